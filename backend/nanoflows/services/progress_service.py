"""
Progress Service - course completion figures computed in SQL.

Completion counts every lesson in the course; the per-course stats shown on
the player only count video lessons.
"""

from typing import Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession

from nanoflows.core.database import query_with_retry


class ProgressService:

    async def get_course_completion(self, db: AsyncSession, user_id: str, course_id: str) -> Dict[str, Any]:
        """
        Completion of a course for one user.

        Returns {"total_lessons", "completed_lessons", "percentage"};
        a course without lessons is 0% complete.
        """
        totals = await query_with_retry(
            "SELECT COUNT(*) AS total FROM lessons WHERE course_id = $1",
            [str(course_id)],
            db=db,
        )
        completed = await query_with_retry(
            """
            SELECT COUNT(*) AS completed
            FROM user_progress up
            JOIN lessons l ON l.id = up.lesson_id
            WHERE up.user_id = $1 AND l.course_id = $2 AND up.completed = $3
            """,
            [str(user_id), str(course_id), True],
            db=db,
        )

        total_lessons = int(totals.rows[0]["total"] or 0)
        completed_lessons = int(completed.rows[0]["completed"] or 0)
        percentage = (completed_lessons / total_lessons * 100) if total_lessons else 0.0

        return {
            "total_lessons": total_lessons,
            "completed_lessons": completed_lessons,
            "percentage": round(percentage, 2),
        }

    async def get_video_stats(self, db: AsyncSession, user_id: str, course_id: str) -> Dict[str, Any]:
        """Player stats: video lessons only"""
        result = await query_with_retry(
            """
            SELECT
                COUNT(l.id) AS total_videos,
                COALESCE(SUM(CASE WHEN up.completed = $3 THEN 1 ELSE 0 END), 0) AS completed_videos,
                COALESCE(SUM(up.time_spent), 0) AS total_time_spent
            FROM lessons l
            LEFT JOIN user_progress up ON up.lesson_id = l.id AND up.user_id = $1
            WHERE l.course_id = $2 AND l.content_type = $4
            """,
            [str(user_id), str(course_id), True, "video"],
            db=db,
        )
        row = result.rows[0]
        total_videos = int(row["total_videos"] or 0)
        completed_videos = int(row["completed_videos"] or 0)

        return {
            "total_videos": total_videos,
            "completed_videos": completed_videos,
            "progress_percentage": round(completed_videos / total_videos * 100) if total_videos else 0,
            "total_time_spent": int(row["total_time_spent"] or 0),
        }

    async def get_user_course_summaries(self, db: AsyncSession, user_id: str) -> List[Dict[str, Any]]:
        """One row per course the user has touched or purchased"""
        result = await query_with_retry(
            """
            SELECT
                c.id AS course_id,
                c.title AS course_title,
                c.thumbnail AS thumbnail,
                (SELECT COUNT(*) FROM lessons l WHERE l.course_id = c.id) AS total_lessons,
                (SELECT COUNT(*) FROM user_progress up
                    WHERE up.course_id = c.id AND up.user_id = $1 AND up.completed = $2) AS completed_lessons,
                (SELECT COALESCE(SUM(up.time_spent), 0) FROM user_progress up
                    WHERE up.course_id = c.id AND up.user_id = $1) AS total_time_spent,
                (SELECT MAX(up.updated_at) FROM user_progress up
                    WHERE up.course_id = c.id AND up.user_id = $1) AS last_accessed
            FROM courses c
            WHERE c.id IN (SELECT course_id FROM user_progress WHERE user_id = $1)
               OR c.id IN (SELECT course_id FROM purchases WHERE user_id = $1)
            ORDER BY c.title
            """,
            [str(user_id), True],
            db=db,
        )

        summaries = []
        for row in result.rows:
            total = int(row["total_lessons"] or 0)
            done = int(row["completed_lessons"] or 0)
            summaries.append({
                "course_id": row["course_id"],
                "course_title": row["course_title"],
                "thumbnail": row["thumbnail"],
                "total_lessons": total,
                "completed_lessons": done,
                "progress_percentage": round(done / total * 100) if total else 0,
                "total_time_spent": int(row["total_time_spent"] or 0),
                "last_accessed": row["last_accessed"],
            })
        return summaries


progress_service = ProgressService()
