"""
Unit Tests for progress, certificates and notes
"""
import pytest
from httpx import AsyncClient


async def complete_lesson(client: AsyncClient, headers: dict, lesson_id: str, **extra):
    return await client.post('/api/v1/progress', headers=headers, json={
        'lesson_id': lesson_id, 'completed': True, **extra,
    })


class TestProgress:

    @pytest.mark.asyncio
    async def test_create_then_update(self, client: AsyncClient, course_tree, auth_headers):
        lesson = course_tree['lessons'][0]

        created = await client.post('/api/v1/progress', headers=auth_headers, json={
            'lesson_id': lesson.id, 'last_position': 30, 'time_spent': 30,
        })
        updated = await client.post('/api/v1/progress', headers=auth_headers, json={
            'lesson_id': lesson.id, 'last_position': 90, 'time_spent': 60, 'completion_percentage': 50,
        })

        assert created.status_code == 201
        assert created.json()['progress']['course_id'] == course_tree['course'].id
        assert updated.status_code == 200
        progress = updated.json()['progress']
        assert progress['last_position'] == 90
        assert progress['time_spent'] == 90
        assert progress['completion_percentage'] == 50.0
        assert progress['completed'] is False

    @pytest.mark.asyncio
    async def test_unknown_lesson(self, client: AsyncClient, auth_headers):
        response = await complete_lesson(client, auth_headers, 'missing-lesson')

        assert response.status_code == 404
        assert response.json()['detail'] == 'Lesson not found'

    @pytest.mark.asyncio
    async def test_course_stats(self, client: AsyncClient, course_tree, auth_headers):
        course = course_tree['course']
        await complete_lesson(client, auth_headers, course_tree['lessons'][0].id, time_spent=120)

        response = await client.get(f'/api/v1/progress/course/{course.id}', headers=auth_headers)

        assert response.status_code == 200
        stats = response.json()['stats']
        assert stats == {
            'total_videos': 2,
            'completed_videos': 1,
            'progress_percentage': 50,
            'total_time_spent': 120,
        }

    @pytest.mark.asyncio
    async def test_user_summary(self, client: AsyncClient, course_tree, auth_headers):
        await complete_lesson(client, auth_headers, course_tree['lessons'][0].id)

        response = await client.get('/api/v1/progress/user', headers=auth_headers)

        summary = response.json()['courses'][0]
        assert summary['course_title'] == 'FastAPI from Scratch'
        assert summary['completed_lessons'] == 1
        assert summary['total_lessons'] == 2
        assert summary['progress_percentage'] == 50

    @pytest.mark.asyncio
    async def test_admin_overview(self, client: AsyncClient, course_tree, test_user, auth_headers, admin_auth_headers):
        await complete_lesson(client, auth_headers, course_tree['lessons'][1].id)

        response = await client.get('/api/v1/progress/all', headers=admin_auth_headers)

        row = response.json()['progress'][0]
        assert row['user_email'] == test_user.email
        assert row['lesson_title'] == 'Lesson 2'


class TestCertificates:

    @pytest.mark.asyncio
    async def test_issued_on_last_lesson(self, client: AsyncClient, course_tree, auth_headers):
        first, second = course_tree['lessons']

        partial = await complete_lesson(client, auth_headers, first.id)
        assert 'certificate_id' not in partial.json()

        done = await complete_lesson(client, auth_headers, second.id)
        certificate_id = done.json()['certificate_id']
        assert certificate_id.startswith('NFC-')

        again = await complete_lesson(client, auth_headers, second.id)
        assert again.json()['certificate_id'] == certificate_id

        mine = await client.get('/api/v1/certificates/user', headers=auth_headers)
        assert [c['certificate_id'] for c in mine.json()['certificates']] == [certificate_id]

        inbox = await client.get('/api/v1/notifications', headers=auth_headers)
        assert 'certificate_issued' in [n['type'] for n in inbox.json()['notifications']]

    @pytest.mark.asyncio
    async def test_generate_before_completion(self, client: AsyncClient, course_tree, auth_headers):
        await complete_lesson(client, auth_headers, course_tree['lessons'][0].id)

        response = await client.post(f"/api/v1/certificates/course/{course_tree['course'].id}", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()['detail'] == {'message': 'Course not completed yet', 'progress': 50.0}

    @pytest.mark.asyncio
    async def test_public_verification(self, client: AsyncClient, course_tree, test_user, auth_headers):
        for lesson in course_tree['lessons']:
            response = await complete_lesson(client, auth_headers, lesson.id)
        certificate_id = response.json()['certificate_id']

        verified = await client.get(f'/api/v1/certificates/verify/{certificate_id}')

        assert verified.status_code == 200
        data = verified.json()
        assert data['valid'] is True
        assert data['student_name'] == test_user.name
        assert data['course_title'] == 'FastAPI from Scratch'
        assert data['verify_url'].endswith(certificate_id)

        unknown = await client.get('/api/v1/certificates/verify/NFC-000000000000-000000')
        assert unknown.status_code == 404

    @pytest.mark.asyncio
    async def test_other_users_cannot_view(self, client: AsyncClient, course_tree, auth_headers, other_auth_headers, admin_auth_headers):
        for lesson in course_tree['lessons']:
            response = await complete_lesson(client, auth_headers, lesson.id)
        certificate_id = response.json()['certificate_id']

        assert (await client.get(f'/api/v1/certificates/{certificate_id}', headers=auth_headers)).status_code == 200
        assert (await client.get(f'/api/v1/certificates/{certificate_id}', headers=other_auth_headers)).status_code == 404
        assert (await client.get(f'/api/v1/certificates/{certificate_id}', headers=admin_auth_headers)).status_code == 200

    @pytest.mark.asyncio
    async def test_download_pdf(self, client: AsyncClient, course_tree, auth_headers):
        for lesson in course_tree['lessons']:
            response = await complete_lesson(client, auth_headers, lesson.id)
        certificate_id = response.json()['certificate_id']

        download = await client.get(f'/api/v1/certificates/{certificate_id}/download', headers=auth_headers)

        assert download.status_code == 200
        assert download.headers['content-type'] == 'application/pdf'
        assert download.content.startswith(b'%PDF')


class TestNotes:

    @pytest.mark.asyncio
    async def test_same_timestamp_overwrites(self, client: AsyncClient, course_tree, auth_headers):
        course = course_tree['course']
        lesson = course_tree['lessons'][0]
        note = {'course_id': course.id, 'lesson_id': lesson.id, 'content': 'Depends() runs per request', 'timestamp': 42}

        first = await client.post('/api/v1/notes', headers=auth_headers, json=note)
        second = await client.post('/api/v1/notes', headers=auth_headers, json={**note, 'content': 'Edited'})

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json()['note']['id'] == first.json()['note']['id']

        listed = await client.get(f'/api/v1/notes/course/{course.id}', headers=auth_headers)
        notes = listed.json()['notes']
        assert len(notes) == 1
        assert notes[0]['content'] == 'Edited'
        assert notes[0]['lesson_title'] == 'Lesson 1'
        assert notes[0]['module_title'] == 'Getting started'

    @pytest.mark.asyncio
    async def test_delete_only_own(self, client: AsyncClient, course_tree, auth_headers, other_auth_headers):
        lesson = course_tree['lessons'][0]
        created = await client.post('/api/v1/notes', headers=auth_headers, json={
            'course_id': course_tree['course'].id, 'lesson_id': lesson.id, 'content': 'Mine',
        })
        note_id = created.json()['note']['id']

        forbidden = await client.delete(f'/api/v1/notes/{note_id}', headers=other_auth_headers)
        deleted = await client.delete(f'/api/v1/notes/{note_id}', headers=auth_headers)

        assert forbidden.status_code == 404
        assert deleted.status_code == 200
