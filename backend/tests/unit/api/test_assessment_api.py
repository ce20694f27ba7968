"""
Unit Tests for assignments and course discussions
"""
import pytest
from httpx import AsyncClient


@pytest.fixture
async def assignment(client: AsyncClient, course_tree, admin_auth_headers) -> dict:
    response = await client.post('/api/v1/assignments', headers=admin_auth_headers, json={
        'course_id': course_tree['course'].id,
        'lesson_id': course_tree['lessons'][0].id,
        'title': 'Build a CRUD API',
        'max_points': 20,
    })
    assert response.status_code == 201
    return response.json()['assignment']


class TestAssignments:

    @pytest.mark.asyncio
    async def test_requires_module_or_lesson(self, client: AsyncClient, course_tree, admin_auth_headers):
        response = await client.post('/api/v1/assignments', headers=admin_auth_headers, json={
            'course_id': course_tree['course'].id,
            'title': 'Floating assignment',
        })

        assert response.status_code == 400
        assert response.json()['detail'] == 'Either module_id or lesson_id is required'

    @pytest.mark.asyncio
    async def test_lesson_listing(self, client: AsyncClient, course_tree, assignment, auth_headers):
        response = await client.get(f"/api/v1/assignments/lesson/{course_tree['lessons'][0].id}", headers=auth_headers)

        assert [a['title'] for a in response.json()['assignments']] == ['Build a CRUD API']

    @pytest.mark.asyncio
    async def test_submit_once(self, client: AsyncClient, assignment, auth_headers):
        payload = {'assignment_id': assignment['id'], 'submission_file_url': '/uploads/submissions/a.pdf'}

        first = await client.post('/api/v1/assignments/submit', headers=auth_headers, json=payload)
        second = await client.post('/api/v1/assignments/submit', headers=auth_headers, json=payload)

        assert first.status_code == 201
        assert first.json()['submission']['status'] == 'submitted'
        assert second.status_code == 400
        assert second.json()['detail'] == 'Assignment already submitted'

    @pytest.mark.asyncio
    async def test_empty_submission(self, client: AsyncClient, assignment, auth_headers):
        response = await client.post('/api/v1/assignments/submit', headers=auth_headers, json={
            'assignment_id': assignment['id'],
        })

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_grading(self, client: AsyncClient, course_tree, assignment, test_user, auth_headers, admin_auth_headers):
        submitted = await client.post('/api/v1/assignments/submit', headers=auth_headers, json={
            'assignment_id': assignment['id'], 'submission_text': 'https://github.com/me/crud',
        })
        submission_id = submitted.json()['submission']['id']

        too_high = await client.put(f'/api/v1/assignments/submission/{submission_id}/grade', headers=admin_auth_headers, json={
            'score': 25,
        })
        assert too_high.status_code == 400
        assert too_high.json()['detail'] == 'Score must be between 0 and 20'

        graded = await client.put(f'/api/v1/assignments/submission/{submission_id}/grade', headers=admin_auth_headers, json={
            'score': 18, 'feedback': 'Solid work',
        })
        assert graded.status_code == 200
        assert graded.json()['submission']['status'] == 'graded'
        assert graded.json()['submission']['score'] == 18.0

        overview = await client.get(
            f"/api/v1/assignments/course/{course_tree['course'].id}/submissions", headers=admin_auth_headers
        )
        row = overview.json()['submissions'][0]
        assert row['user_email'] == test_user.email
        assert row['assignment_title'] == 'Build a CRUD API'
        assert row['max_points'] == 20

        mine = await client.get('/api/v1/assignments/submissions', headers=auth_headers)
        assert mine.json()['submissions'][0]['feedback'] == 'Solid work'

    @pytest.mark.asyncio
    async def test_grade_requires_score(self, client: AsyncClient, assignment, auth_headers, admin_auth_headers):
        submitted = await client.post('/api/v1/assignments/submit', headers=auth_headers, json={
            'assignment_id': assignment['id'], 'submission_text': 'done',
        })

        response = await client.put(
            f"/api/v1/assignments/submission/{submitted.json()['submission']['id']}/grade",
            headers=admin_auth_headers,
            json={'feedback': 'no score'},
        )

        assert response.status_code == 400
        assert response.json()['detail'] == 'Score is required'


class TestDiscussions:

    @pytest.mark.asyncio
    async def test_thread_with_replies(self, client: AsyncClient, course_tree, test_user, other_user, auth_headers, other_auth_headers):
        created = await client.post('/api/v1/discussions', headers=auth_headers, json={
            'course_id': course_tree['course'].id,
            'title': 'Dependency overrides?',
            'content': 'How do I swap get_db in tests?',
        })
        assert created.status_code == 201
        discussion_id = created.json()['discussion']['id']

        reply = await client.post(f'/api/v1/discussions/{discussion_id}/reply', headers=other_auth_headers, json={
            'content': 'app.dependency_overrides',
        })
        assert reply.status_code == 201
        assert reply.json()['reply']['author_name'] == other_user.name

        listed = await client.get(
            '/api/v1/discussions', headers=auth_headers, params={'course_id': course_tree['course'].id}
        )
        thread = listed.json()['discussions'][0]
        assert thread['author_name'] == test_user.name
        assert thread['reply_count'] == 1

        detail = await client.get(f'/api/v1/discussions/{discussion_id}', headers=auth_headers)
        assert [r['content'] for r in detail.json()['discussion']['replies']] == ['app.dependency_overrides']

    @pytest.mark.asyncio
    async def test_reply_to_missing_thread(self, client: AsyncClient, auth_headers):
        response = await client.post('/api/v1/discussions/nope/reply', headers=auth_headers, json={'content': 'hi'})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_owner_or_admin(self, client: AsyncClient, course_tree, auth_headers, other_auth_headers, admin_auth_headers):
        created = await client.post('/api/v1/discussions', headers=auth_headers, json={
            'course_id': course_tree['course'].id, 'title': 'Spam?', 'content': 'maybe',
        })
        discussion_id = created.json()['discussion']['id']

        stranger = await client.delete(f'/api/v1/discussions/{discussion_id}', headers=other_auth_headers)
        admin = await client.delete(f'/api/v1/discussions/{discussion_id}', headers=admin_auth_headers)

        assert stranger.status_code == 404
        assert stranger.json()['detail'] == 'Discussion not found or unauthorized'
        assert admin.status_code == 200
