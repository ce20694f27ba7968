"""
Unit Tests for course, module, lesson and quiz endpoints
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from nanoflows.models import Course, Lesson, Notification, Purchase, PurchaseSource


class TestCourseCatalogue:

    @pytest.mark.asyncio
    async def test_list_only_published(self, client: AsyncClient, db_session, course_tree, free_course):
        free_course.published = False
        await db_session.commit()

        response = await client.get('/api/v1/courses')

        assert response.status_code == 200
        titles = [c['title'] for c in response.json()['courses']]
        assert titles == ['FastAPI from Scratch']

    @pytest.mark.asyncio
    async def test_search_and_sort(self, client: AsyncClient, course_tree, free_course):
        response = await client.get('/api/v1/courses', params={'search': 'fastapi'})
        assert [c['title'] for c in response.json()['courses']] == ['FastAPI from Scratch']

        response = await client.get('/api/v1/courses', params={'sortBy': 'price_low'})
        assert [c['price'] for c in response.json()['courses']] == [0.0, 499.0]

        response = await client.get('/api/v1/courses', params={'sortBy': 'price_high'})
        assert [c['price'] for c in response.json()['courses']] == [499.0, 0.0]

    @pytest.mark.asyncio
    async def test_get_course_with_tree(self, client: AsyncClient, course_tree):
        course = course_tree['course']

        response = await client.get(f'/api/v1/courses/{course.id}')

        assert response.status_code == 200
        data = response.json()['course']
        assert data['modules'][0]['title'] == 'Getting started'
        assert [lesson['title'] for lesson in data['modules'][0]['lessons']] == ['Lesson 1', 'Lesson 2']
        assert response.json()['purchased'] is False

    @pytest.mark.asyncio
    async def test_purchased_flag_for_signed_in_user(self, client: AsyncClient, free_course, auth_headers):
        await client.post('/api/v1/purchases', headers=auth_headers, json={'course_id': free_course.id})

        signed_in = await client.get(f'/api/v1/courses/{free_course.id}', headers=auth_headers)
        bad_token = await client.get(
            f'/api/v1/courses/{free_course.id}', headers={'Authorization': 'Bearer not-a-token'}
        )

        assert signed_in.json()['purchased'] is True
        assert bad_token.status_code == 200
        assert bad_token.json()['purchased'] is False

    @pytest.mark.asyncio
    async def test_get_missing_course(self, client: AsyncClient):
        response = await client.get('/api/v1/courses/does-not-exist')

        assert response.status_code == 404
        assert response.json()['detail'] == 'Course not found'


class TestCourseAdmin:

    @pytest.mark.asyncio
    async def test_create_free_course_zeroes_price(self, client: AsyncClient, admin_user, admin_auth_headers):
        response = await client.post('/api/v1/courses', headers=admin_auth_headers, json={
            'title': 'Intro to SQL',
            'description': 'Queries from the ground up',
            'category': 'databases',
            'price': 999,
            'free': True,
        })

        assert response.status_code == 201
        course = response.json()['course']
        assert course['price'] == 0.0
        assert course['free'] is True
        assert course['instructor_name'] == admin_user.name

    @pytest.mark.asyncio
    async def test_paid_course_requires_price(self, client: AsyncClient, admin_auth_headers):
        response = await client.post('/api/v1/courses', headers=admin_auth_headers, json={
            'title': 'Advanced SQL',
            'description': 'Window functions',
            'category': 'databases',
        })

        assert response.status_code == 400
        assert response.json()['detail'] == 'Price is required for paid courses'

    @pytest.mark.asyncio
    async def test_create_requires_admin(self, client: AsyncClient, auth_headers):
        response = await client.post('/api/v1/courses', headers=auth_headers, json={
            'title': 'Sneaky',
            'description': 'Not allowed',
            'category': 'misc',
            'free': True,
        })

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_update_to_free(self, client: AsyncClient, course_tree, admin_auth_headers):
        course = course_tree['course']

        response = await client.put(f'/api/v1/courses/{course.id}', headers=admin_auth_headers, json={'free': True})

        assert response.status_code == 200
        assert response.json()['course']['price'] == 0.0

    @pytest.mark.asyncio
    async def test_admin_list_counts(self, client: AsyncClient, course_tree, admin_auth_headers):
        response = await client.get('/api/v1/courses/admin/all', headers=admin_auth_headers)

        assert response.status_code == 200
        course = response.json()['courses'][0]
        assert course['module_count'] == 1
        assert course['lesson_count'] == 2

    @pytest.mark.asyncio
    async def test_admin_detail_revenue(self, client: AsyncClient, db_session, course_tree, test_user, admin_auth_headers):
        course = course_tree['course']
        db_session.add(Purchase(
            user_id=test_user.id,
            course_id=course.id,
            amount=499.0,
            source=PurchaseSource.RAZORPAY,
        ))
        await db_session.commit()

        response = await client.get(f'/api/v1/courses/admin/{course.id}', headers=admin_auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data['enrolled_students'] == 1
        assert data['revenue'] == 499.0

    @pytest.mark.asyncio
    async def test_delete_cascades(self, client: AsyncClient, db_session, course_tree, admin_auth_headers):
        course = course_tree['course']

        response = await client.delete(f'/api/v1/courses/{course.id}', headers=admin_auth_headers)

        assert response.status_code == 200
        db_session.expunge_all()
        assert (await db_session.execute(select(Course).where(Course.id == course.id))).scalar_one_or_none() is None
        lessons = (await db_session.execute(select(Lesson).where(Lesson.course_id == course.id))).scalars().all()
        assert lessons == []


class TestModulesAndLessons:

    @pytest.mark.asyncio
    async def test_structure_with_counts(self, client: AsyncClient, course_tree, auth_headers, admin_auth_headers):
        course = course_tree['course']
        lesson = course_tree['lessons'][0]

        await client.post('/api/v1/quizzes', headers=admin_auth_headers, json={
            'course_id': course.id,
            'lesson_id': lesson.id,
            'question': 'What does ASGI stand for?',
            'options': ['Async Server Gateway Interface', 'Another Simple Gateway'],
            'correct_answer': 0,
        })

        response = await client.get(f'/api/v1/modules/course/{course.id}', headers=auth_headers)

        assert response.status_code == 200
        module = response.json()['modules'][0]
        assert module['lesson_count'] == 2
        assert module['lessons'][0]['quiz_count'] == 1
        assert module['lessons'][0]['assignment_count'] == 0
        assert module['lessons'][1]['quiz_count'] == 0

    @pytest.mark.asyncio
    async def test_lesson_defaults_and_order(self, client: AsyncClient, course_tree, admin_auth_headers):
        module = course_tree['module']

        response = await client.post('/api/v1/modules/lesson', headers=admin_auth_headers, json={
            'module_id': module.id,
            'title': 'Lesson 3',
        })

        assert response.status_code == 201
        lesson = response.json()['lesson']
        assert lesson['course_id'] == course_tree['course'].id
        assert lesson['video_duration'] == '0:00'
        assert lesson['content_type'] == 'video'
        assert lesson['order_index'] == 2

    @pytest.mark.asyncio
    async def test_new_module_notifies_enrolled_students(
        self, client: AsyncClient, db_session, course_tree, test_user, admin_auth_headers
    ):
        course = course_tree['course']
        db_session.add(Purchase(user_id=test_user.id, course_id=course.id, amount=499.0, source=PurchaseSource.RAZORPAY))
        await db_session.commit()

        response = await client.post('/api/v1/modules/module', headers=admin_auth_headers, json={
            'course_id': course.id,
            'title': 'Deployment',
        })

        assert response.status_code == 201
        assert response.json()['module']['order_index'] == 1

        notifications = (await db_session.execute(
            select(Notification).where(Notification.user_id == test_user.id)
        )).scalars().all()
        assert [n.type for n in notifications] == ['course_update']
        assert 'Deployment' in notifications[0].message


class TestQuizzes:

    async def _create_quiz(self, client, headers, course_tree, **overrides):
        payload = {
            'course_id': course_tree['course'].id,
            'module_id': course_tree['module'].id,
            'question': 'Which status code means Created?',
            'options': ['200', '201', '204'],
            'correct_answer': 1,
            'points': 5,
        }
        payload.update(overrides)
        return await client.post('/api/v1/quizzes', headers=headers, json=payload)

    @pytest.mark.asyncio
    async def test_options_validation(self, client: AsyncClient, course_tree, admin_auth_headers):
        response = await self._create_quiz(client, admin_auth_headers, course_tree, options=['only one'], correct_answer=0)

        assert response.status_code == 400
        assert response.json()['detail'] == 'Options must be a list with at least 2 items'

    @pytest.mark.asyncio
    async def test_correct_answer_index_validation(self, client: AsyncClient, course_tree, admin_auth_headers):
        response = await self._create_quiz(client, admin_auth_headers, course_tree, correct_answer=3)

        assert response.status_code == 400
        assert response.json()['detail'] == 'Invalid correct_answer index'

    @pytest.mark.asyncio
    async def test_module_or_lesson_required(self, client: AsyncClient, course_tree, admin_auth_headers):
        response = await self._create_quiz(client, admin_auth_headers, course_tree, module_id=None)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_students_do_not_see_answers(self, client: AsyncClient, course_tree, auth_headers, admin_auth_headers):
        await self._create_quiz(client, admin_auth_headers, course_tree)

        response = await client.get(f"/api/v1/quizzes/module/{course_tree['module'].id}", headers=auth_headers)

        assert response.status_code == 200
        quiz = response.json()['quizzes'][0]
        assert 'correct_answer' not in quiz
        assert quiz['options'] == ['200', '201', '204']

    @pytest.mark.asyncio
    async def test_attempt_scoring(self, client: AsyncClient, course_tree, auth_headers, admin_auth_headers):
        quiz = (await self._create_quiz(client, admin_auth_headers, course_tree)).json()['quiz']

        right = await client.post('/api/v1/quizzes/attempt', headers=auth_headers, json={
            'quiz_id': quiz['id'], 'selected_answer': 1,
        })
        wrong = await client.post('/api/v1/quizzes/attempt', headers=auth_headers, json={
            'quiz_id': quiz['id'], 'selected_answer': 0,
        })

        assert right.status_code == 201
        assert right.json()['is_correct'] is True
        assert right.json()['score'] == 5
        assert wrong.json()['is_correct'] is False
        assert wrong.json()['score'] == 0
        assert wrong.json()['correct_answer'] == 1

        scores = await client.get('/api/v1/quizzes/scores', headers=auth_headers)
        assert len(scores.json()['scores']) == 2
