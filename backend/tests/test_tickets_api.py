import unittest
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from _support import ApiTestCase, add_user, auth_headers, make_token

from app.models.media_asset import MediaAsset
from app.models.message import Message
from app.models.profile import Profile
from app.models.ticket import Ticket
from app.models.user_role import AppRole, UserRole


class TestAuthentication(ApiTestCase):
    def test_missing_token(self):
        resp = self.client.get("/api/tickets")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["detail"], "Missing bearer token")

    def test_bad_signature(self):
        token = make_token(str(uuid4()), "eve@example.edu", secret="not-the-project-secret-0123456789")
        resp = self.client.get("/api/tickets", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["detail"], "Invalid bearer token")

    def test_expired_token(self):
        token = make_token(str(uuid4()), "late@example.edu", expires_in=-60)
        resp = self.client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(resp.status_code, 401)

    def test_first_request_creates_student_profile(self):
        user_id = str(uuid4())
        resp = self.client.get("/api/me", headers=auth_headers(user_id, "New.Student@Example.edu", "New Student"))
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["id"], user_id)
        self.assertEqual(body["role"], "student")
        self.assertEqual(body["roles"], ["student"])
        self.assertFalse(body["is_staff"])

        profile = self.db.query(Profile).filter(Profile.id == user_id).one()
        self.assertEqual(profile.name, "New Student")
        self.assertEqual(profile.email, "new.student@example.edu")
        roles = self.db.query(UserRole).filter(UserRole.user_id == user_id).all()
        self.assertEqual([r.role for r in roles], [AppRole.STUDENT])

    def test_me_reports_highest_role(self):
        admin = add_user(self.db, "Ada Admin", AppRole.STAFF, AppRole.ADMIN)
        body = self.client.get("/api/me", headers=self.headers_for(admin)).json()
        self.assertEqual(body["role"], "admin")
        self.assertEqual(body["roles"], ["admin", "staff"])
        self.assertTrue(body["is_staff"])
        self.assertTrue(body["is_admin"])

    def test_public_config_needs_no_token(self):
        resp = self.client.get("/api/public-config")
        self.assertEqual(resp.status_code, 200)
        self.assertIn("supabaseUrl", resp.json())
        self.assertIn("application/pdf", resp.json()["allowedAttachmentTypes"])


class TestTickets(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.student = add_user(self.db, "Stu Dent", AppRole.STUDENT)
        self.other = add_user(self.db, "Oth Er", AppRole.STUDENT)
        self.staff = add_user(self.db, "Sam Staff", AppRole.STAFF)

    def _create(self, profile, subject="Cannot log in", message="My password reset link fails"):
        resp = self.client.post(
            "/api/tickets",
            json={"subject": subject, "message": message},
            headers=self.headers_for(profile),
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()

    def test_create_ticket_with_first_message(self):
        ticket = self._create(self.student)
        self.assertEqual(ticket["status"], "pending")
        self.assertEqual(ticket["student_id"], self.student.id)
        self.assertEqual(ticket["message_count"], 1)

        messages = self.client.get(f"/api/tickets/{ticket['id']}/messages", headers=self.headers_for(self.student)).json()
        self.assertEqual(len(messages), 1)
        self.assertEqual(messages[0]["content"], "My password reset link fails")
        self.assertEqual(messages[0]["sender"]["name"], "Stu Dent")

    def test_blank_subject_rejected(self):
        resp = self.client.post(
            "/api/tickets",
            json={"subject": "   ", "message": "hello"},
            headers=self.headers_for(self.student),
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Subject is required")

    def test_students_only_see_their_own(self):
        mine = self._create(self.student, subject="Mine")
        self._create(self.other, subject="Theirs")

        listed = self.client.get("/api/tickets", headers=self.headers_for(self.student)).json()
        self.assertEqual([t["id"] for t in listed], [mine["id"]])

        staff_view = self.client.get("/api/tickets", headers=self.headers_for(self.staff)).json()
        self.assertEqual({t["subject"] for t in staff_view}, {"Mine", "Theirs"})

    def test_other_student_gets_not_found(self):
        ticket = self._create(self.other)
        headers = self.headers_for(self.student)
        self.assertEqual(self.client.get(f"/api/tickets/{ticket['id']}", headers=headers).status_code, 404)
        self.assertEqual(self.client.get(f"/api/tickets/{ticket['id']}/messages", headers=headers).status_code, 404)
        resp = self.client.post(f"/api/tickets/{ticket['id']}/messages", json={"content": "hi"}, headers=headers)
        self.assertEqual(resp.status_code, 404)

    def test_student_cannot_change_status(self):
        ticket = self._create(self.student)
        resp = self.client.patch(
            f"/api/tickets/{ticket['id']}/status",
            json={"status": "completed"},
            headers=self.headers_for(self.student),
        )
        self.assertEqual(resp.status_code, 403)

    def test_staff_changes_status_and_filters(self):
        ticket = self._create(self.student)
        self._create(self.student, subject="Other question")
        resp = self.client.patch(
            f"/api/tickets/{ticket['id']}/status",
            json={"status": "in_progress"},
            headers=self.headers_for(self.staff),
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "in_progress")

        listed = self.client.get("/api/tickets?status=in_progress", headers=self.headers_for(self.staff)).json()
        self.assertEqual([t["id"] for t in listed], [ticket["id"]])

    def test_unknown_status_rejected(self):
        ticket = self._create(self.student)
        resp = self.client.patch(
            f"/api/tickets/{ticket['id']}/status",
            json={"status": "resolved"},
            headers=self.headers_for(self.staff),
        )
        self.assertEqual(resp.status_code, 422)

    def test_status_change_refreshes_updated_at(self):
        ticket = self._create(self.student)
        stale = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
        row = self.db.query(Ticket).filter(Ticket.id == ticket["id"]).one()
        row.created_at = stale
        row.updated_at = stale
        self.db.commit()

        resp = self.client.patch(
            f"/api/tickets/{ticket['id']}/status",
            json={"status": "completed"},
            headers=self.headers_for(self.staff),
        )
        self.assertEqual(resp.status_code, 200)
        updated_at = datetime.fromisoformat(resp.json()["updated_at"].replace("Z", "+00:00"))
        self.assertGreater(updated_at.replace(tzinfo=None), stale.replace(tzinfo=None) + timedelta(days=1))

        self.db.expire_all()
        row = self.db.query(Ticket).filter(Ticket.id == ticket["id"]).one()
        self.assertGreater(row.updated_at.replace(tzinfo=None), stale.replace(tzinfo=None))

    def test_messages_listed_oldest_first(self):
        ticket = self._create(self.student, message="first")
        row = self.db.query(Ticket).filter(Ticket.id == ticket["id"]).one()
        base = datetime.now(timezone.utc)
        self.db.add(Message(ticket_id=row.id, sender_id=self.staff.id, content="third", created_at=base + timedelta(hours=2)))
        self.db.add(Message(ticket_id=row.id, sender_id=self.student.id, content="second", created_at=base + timedelta(hours=1)))
        self.db.commit()

        messages = self.client.get(f"/api/tickets/{ticket['id']}/messages", headers=self.headers_for(self.student)).json()
        self.assertEqual([m["content"] for m in messages], ["first", "second", "third"])

    def test_staff_reply_and_voice_message(self):
        ticket = self._create(self.student)
        reply = self.client.post(
            f"/api/tickets/{ticket['id']}/messages",
            json={"content": "Try clearing your cookies"},
            headers=self.headers_for(self.staff),
        )
        self.assertEqual(reply.status_code, 201)
        self.assertEqual(reply.json()["sender_id"], self.staff.id)

        voice = self.client.post(
            f"/api/tickets/{ticket['id']}/messages",
            json={"message_type": "voice", "transcript": "still broken"},
            headers=self.headers_for(self.student),
        )
        self.assertEqual(voice.status_code, 201)
        self.assertEqual(voice.json()["message_type"], "voice")
        self.assertIsNone(voice.json()["content"])

        empty = self.client.post(
            f"/api/tickets/{ticket['id']}/messages",
            json={"content": "  "},
            headers=self.headers_for(self.student),
        )
        self.assertEqual(empty.status_code, 400)

        messages = self.client.get(f"/api/tickets/{ticket['id']}/messages", headers=self.headers_for(self.student)).json()
        self.assertEqual(len(messages), 3)
        listed = self.client.get("/api/tickets", headers=self.headers_for(self.student)).json()
        self.assertEqual(listed[0]["message_count"], 3)


class TestAttachments(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.student = add_user(self.db, "Stu Dent", AppRole.STUDENT)
        self.other = add_user(self.db, "Oth Er", AppRole.STUDENT)
        self.staff = add_user(self.db, "Sam Staff", AppRole.STAFF)
        resp = self.client.post(
            "/api/tickets",
            json={"subject": "Broken printer", "message": "See attached"},
            headers=self.headers_for(self.student),
        )
        self.ticket = resp.json()

    def _upload(self, profile, files, content=None):
        data = {"content": content} if content is not None else {}
        return self.client.post(
            f"/api/tickets/{self.ticket['id']}/attachments",
            data=data,
            files=files,
            headers=self.headers_for(profile),
        )

    def test_upload_and_sign(self):
        resp = self._upload(
            self.student,
            [
                ("files", ("error.png", b"\x89PNG fake image", "image/png")),
                ("files", ("receipt.pdf", b"%PDF-1.4 fake", "application/pdf")),
            ],
            content="Screenshots",
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        body = resp.json()
        self.assertEqual(body["content"], "Screenshots")
        self.assertEqual(sorted(a["file_type"] for a in body["media_assets"]), ["image", "pdf"])
        for asset in body["media_assets"]:
            self.assertTrue(asset["storage_path"].startswith(f"{self.student.id}/{self.ticket['id']}/"))
            self.assertIn(asset["storage_path"], self.storage.objects)

        asset_id = body["media_assets"][0]["id"]
        signed = self.client.get(f"/api/attachments/{asset_id}/url", headers=self.headers_for(self.staff))
        self.assertEqual(signed.status_code, 200)
        self.assertEqual(signed.json()["expires_in"], 3600)
        self.assertIn("ttl=3600", signed.json()["url"])

        denied = self.client.get(f"/api/attachments/{asset_id}/url", headers=self.headers_for(self.other))
        self.assertEqual(denied.status_code, 404)

    def test_rejects_unsupported_type_without_storing(self):
        resp = self._upload(
            self.student,
            [
                ("files", ("ok.png", b"\x89PNG", "image/png")),
                ("files", ("notes.txt", b"plain text", "text/plain")),
            ],
        )
        self.assertEqual(resp.status_code, 415)
        self.assertEqual(self.storage.objects, {})
        self.assertEqual(self.db.query(MediaAsset).count(), 0)

    def test_storage_failure_rolls_back_message(self):
        self.storage.fail_after = 1
        resp = self._upload(
            self.student,
            [
                ("files", ("first.png", b"\x89PNG one", "image/png")),
                ("files", ("second.png", b"\x89PNG two", "image/png")),
            ],
            content="retry",
        )
        self.assertEqual(resp.status_code, 502)
        self.assertEqual(self.storage.objects, {})
        self.assertEqual(len(self.storage.removed), 1)
        self.assertTrue(self.storage.removed[0].startswith(f"{self.student.id}/{self.ticket['id']}/"))
        self.assertEqual(self.db.query(MediaAsset).count(), 0)
        messages = self.client.get(
            f"/api/tickets/{self.ticket['id']}/messages", headers=self.headers_for(self.student)
        ).json()
        self.assertEqual(len(messages), 1)

    def test_unknown_attachment(self):
        resp = self.client.get(f"/api/attachments/{uuid4()}/url", headers=self.headers_for(self.staff))
        self.assertEqual(resp.status_code, 404)


if __name__ == "__main__":
    unittest.main()
