from bson import ObjectId

from skillcerts.courses import database as store
from skillcerts.courses.enrollment_service import materialize_enrollment
from skillcerts.courses.progress_service import compute_percentage
from tests.conftest import add_lectures, auth, make_course


def toggle_url(course, lecture):
    return f"/api/progress/{course['_id']}/lectures/{lecture['_id']}/toggle"


class TestPercentage:

    def test_basic_ratio(self):
        assert compute_percentage(1, 4) == 25.0
        assert compute_percentage(1, 3) == 33.33

    def test_no_lectures_is_zero(self):
        assert compute_percentage(0, 0) == 0.0

    def test_clamped_to_hundred(self):
        assert compute_percentage(5, 4) == 100.0


class TestToggle:

    async def test_toggle_adds_then_removes(self, client, db, student, free_course):
        lectures = await add_lectures(db, free_course, 4)
        await materialize_enrollment(db, student["_id"], free_course["_id"])

        first = await client.post(toggle_url(free_course, lectures[0]), headers=auth(student))
        assert first.status_code == 200
        assert first.json()["data"]["progress_percentage"] == 25.0
        assert first.json()["data"]["completed_lectures"] == [str(lectures[0]["_id"])]

        second = await client.post(toggle_url(free_course, lectures[0]), headers=auth(student))
        assert second.json()["data"]["progress_percentage"] == 0
        assert second.json()["data"]["completed_lectures"] == []

    async def test_all_lectures_reach_hundred(self, client, db, student, free_course):
        lectures = await add_lectures(db, free_course, 3)
        await materialize_enrollment(db, student["_id"], free_course["_id"])

        for lecture in lectures:
            response = await client.post(toggle_url(free_course, lecture), headers=auth(student))

        assert response.json()["data"]["progress_percentage"] == 100.0

    async def test_not_enrolled_forbidden(self, client, db, student, free_course):
        lectures = await add_lectures(db, free_course, 1)
        response = await client.post(toggle_url(free_course, lectures[0]), headers=auth(student))
        assert response.status_code == 403
        assert response.json()["code"] == "NOT_ENROLLED"

    async def test_lecture_from_other_course_not_found(self, client, db, student, instructor, free_course):
        other = await make_course(db, instructor, title="Other Course")
        foreign = await add_lectures(db, other, 1)
        await materialize_enrollment(db, student["_id"], free_course["_id"])

        response = await client.post(toggle_url(free_course, foreign[0]), headers=auth(student))
        assert response.status_code == 404
        assert response.json()["code"] == "LECTURE_NOT_FOUND"

    async def test_malformed_lecture_id(self, client, db, student, free_course):
        await materialize_enrollment(db, student["_id"], free_course["_id"])
        response = await client.post(
            f"/api/progress/{free_course['_id']}/lectures/not-an-id/toggle", headers=auth(student)
        )
        assert response.status_code == 404

    async def test_toggle_repairs_missing_progress(self, client, db, student, free_course):
        lectures = await add_lectures(db, free_course, 2)
        await materialize_enrollment(db, student["_id"], free_course["_id"])
        await db.progress.delete_many({})

        response = await client.post(toggle_url(free_course, lectures[1]), headers=auth(student))
        assert response.status_code == 200
        assert response.json()["data"]["progress_percentage"] == 50.0

    async def test_unenroll_during_toggle_is_not_enrolled(self, client, db, student, free_course, monkeypatch):
        lectures = await add_lectures(db, free_course, 1)
        await materialize_enrollment(db, student["_id"], free_course["_id"])
        update_lectures = store.update_progress_lectures

        async def unenroll_first(db_, progress_id, lecture_id, add):
            await db_.enrollments.delete_many({"user": student["_id"]})
            await db_.progress.delete_many({"user": student["_id"]})
            return await update_lectures(db_, progress_id, lecture_id, add)

        monkeypatch.setattr(store, "update_progress_lectures", unenroll_first)

        response = await client.post(toggle_url(free_course, lectures[0]), headers=auth(student))
        assert response.status_code == 403
        assert response.json()["code"] == "NOT_ENROLLED"

    async def test_full_progress_does_not_issue_certificate(self, client, db, student, free_course):
        lectures = await add_lectures(db, free_course, 2)
        await materialize_enrollment(db, student["_id"], free_course["_id"])
        for lecture in lectures:
            await client.post(toggle_url(free_course, lecture), headers=auth(student))

        assert await db.certificates.count_documents({}) == 0
        enrollment = await db.enrollments.find_one({"user": student["_id"]})
        assert enrollment["completed"] is False


class TestReadProgress:

    async def test_read_progress(self, client, db, student, free_course):
        lectures = await add_lectures(db, free_course, 2)
        await materialize_enrollment(db, student["_id"], free_course["_id"])
        await client.post(toggle_url(free_course, lectures[0]), headers=auth(student))

        response = await client.get(f"/api/progress/{free_course['_id']}", headers=auth(student))
        data = response.json()["data"]
        assert data["progress_percentage"] == 50.0
        assert data["total_lectures"] == 2

    async def test_read_repairs_missing_progress(self, client, db, student, free_course):
        await materialize_enrollment(db, student["_id"], free_course["_id"])
        await db.progress.delete_many({})

        response = await client.get(f"/api/progress/{free_course['_id']}", headers=auth(student))
        assert response.status_code == 200
        assert await db.progress.count_documents({"user": student["_id"]}) == 1

    async def test_read_without_enrollment(self, client, student):
        response = await client.get(f"/api/progress/{ObjectId()}", headers=auth(student))
        assert response.status_code == 403
