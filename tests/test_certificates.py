"""
Completion and certificate issuance, rendering and public verification
"""

import asyncio
import re

from skillcerts.courses import database as store
from skillcerts.courses.certificate_render import generate_certificate_image
from skillcerts.courses.certificate_service import ensure_certificate, generate_certificate_code
from skillcerts.courses.enrollment_service import materialize_enrollment
from skillcerts.notifications.templates import render_certificate_html
from tests.conftest import auth

CODE_PATTERN = re.compile(r"SC-[0-9A-F]{12}")


async def complete(client, student, course):
    return await client.patch(f"/api/enrollments/{course['_id']}/complete", headers=auth(student))


class TestCertificateCode:

    def test_code_format(self):
        assert CODE_PATTERN.fullmatch(generate_certificate_code())

    def test_codes_are_random(self):
        assert len({generate_certificate_code() for _ in range(50)}) == 50


class TestMarkComplete:

    async def test_mark_complete_issues_one_certificate(self, client, db, student, free_course, mailer):
        await materialize_enrollment(db, student["_id"], free_course["_id"])

        response = await complete(client, student, free_course)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["enrollment"]["completed"] is True
        assert data["enrollment"]["completed_at"] is not None
        assert CODE_PATTERN.fullmatch(data["certificate"]["certificate_id"])

        code = data["certificate"]["certificate_id"]
        assert len(mailer.sent) == 1
        assert f"http://frontend.test/certificates/{code}" in mailer.sent[0]["html"]

    async def test_mark_complete_twice_is_invalid_state(self, client, db, student, free_course, mailer):
        await materialize_enrollment(db, student["_id"], free_course["_id"])
        await complete(client, student, free_course)

        again = await complete(client, student, free_course)
        assert again.status_code == 400
        assert again.json()["code"] == "ALREADY_COMPLETED"
        assert await db.certificates.count_documents({"user": student["_id"]}) == 1
        assert len(mailer.sent) == 1

    async def test_mark_complete_without_enrollment(self, client, student, free_course):
        response = await complete(client, student, free_course)
        assert response.status_code == 404

    async def test_concurrent_issuance_keeps_one_certificate(self, db, student, free_course):
        await materialize_enrollment(db, student["_id"], free_course["_id"])
        results = await asyncio.gather(*[
            ensure_certificate(db, student["_id"], free_course["_id"]) for _ in range(3)
        ])

        codes = {certificate["certificate_id"] for certificate, _ in results}
        assert len(codes) == 1
        assert [created for _, created in results].count(True) == 1
        assert await db.certificates.count_documents({}) == 1


class TestGenerate:

    async def test_generate_requires_completion(self, client, db, student, free_course):
        await materialize_enrollment(db, student["_id"], free_course["_id"])
        response = await client.post(f"/api/certificates/generate/{free_course['_id']}", headers=auth(student))
        assert response.status_code == 400
        assert response.json()["code"] == "COURSE_NOT_COMPLETED"

    async def test_generate_returns_existing(self, client, db, student, free_course):
        await materialize_enrollment(db, student["_id"], free_course["_id"])
        issued = (await complete(client, student, free_course)).json()["data"]["certificate"]

        response = await client.post(f"/api/certificates/generate/{free_course['_id']}", headers=auth(student))
        assert response.status_code == 200
        assert response.json()["message"] == "Certificate already exists"
        assert response.json()["data"]["certificate_id"] == issued["certificate_id"]

    async def test_generate_creates_when_missing(self, client, db, student, free_course):
        await materialize_enrollment(db, student["_id"], free_course["_id"])
        await store.complete_enrollment(db, student["_id"], free_course["_id"])

        response = await client.post(f"/api/certificates/generate/{free_course['_id']}", headers=auth(student))
        assert response.status_code == 201
        assert response.json()["data"]["course"]["title"] == "Free Python Basics"


class TestCertificateViews:

    async def issue(self, client, db, student, course):
        await materialize_enrollment(db, student["_id"], course["_id"])
        return (await complete(client, student, course)).json()["data"]["certificate"]["certificate_id"]

    async def test_public_verification_page(self, client, db, student, free_course):
        code = await self.issue(client, db, student, free_course)

        response = await client.get(f"/api/certificates/verify/{code}")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "Asha Learner" in response.text
        assert "Free Python Basics" in response.text
        assert "Dr. Mehta" in response.text
        assert code in response.text

    async def test_unknown_code_renders_not_found_page(self, client):
        response = await client.get("/api/certificates/verify/SC-000000000000")
        assert response.status_code == 404
        assert response.headers["content-type"].startswith("text/html")
        assert "Certificate Not Found" in response.text

    async def test_verification_has_no_side_effects(self, client, db, student, free_course):
        code = await self.issue(client, db, student, free_course)
        before = await db.certificates.find_one({"certificate_id": code})
        await client.get(f"/api/certificates/verify/{code}")
        assert await db.certificates.find_one({"certificate_id": code}) == before

    async def test_my_certificates(self, client, db, student, free_course):
        code = await self.issue(client, db, student, free_course)
        response = await client.get("/api/certificates/my", headers=auth(student))
        certificates = response.json()["data"]
        assert [c["certificate_id"] for c in certificates] == [code]
        assert certificates[0]["course"]["title"] == "Free Python Basics"

    async def test_course_certificate_not_found(self, client, student, free_course):
        response = await client.get(f"/api/certificates/course/{free_course['_id']}", headers=auth(student))
        assert response.status_code == 404
        assert response.json()["code"] == "CERTIFICATE_NOT_FOUND"

    async def test_view_html(self, client, db, student, free_course):
        code = await self.issue(client, db, student, free_course)
        response = await client.get(f"/api/certificates/view/{free_course['_id']}", headers=auth(student))
        assert response.status_code == 200
        assert code in response.text

    async def test_download_png(self, client, db, student, free_course):
        code = await self.issue(client, db, student, free_course)
        response = await client.get(f"/api/certificates/download/{free_course['_id']}", headers=auth(student))
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(b"\x89PNG")
        assert code in response.headers["content-disposition"]


class TestRendering:

    def test_html_escapes_user_content(self):
        html = render_certificate_html(
            user_name="<script>alert(1)</script>",
            course_title="Safe & Sound",
            instructor_name="Prof. Rao",
            completion_date="January 01, 2025",
            certificate_id="SC-ABCDEF123456",
        )
        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "Safe &amp; Sound" in html

    def test_png_is_rendered(self):
        png = generate_certificate_image("Asha", "Python", "Dr. Mehta", "January 01, 2025", "SC-ABCDEF123456")
        assert png[:8] == b"\x89PNG\r\n\x1a\n"
