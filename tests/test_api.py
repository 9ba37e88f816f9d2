import unittest

from fastapi.testclient import TestClient

from yaymon.main import create_app

from tests.helpers import embedded_settings, media_transport


class ApiTest(unittest.TestCase):

    def setUp(self):
        app = create_app(embedded_settings(), transport=media_transport())
        self.client = TestClient(app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    def _login(self, email, password):
        response = self.client.post("/auth/login", json={"email": email, "password": password})
        self.assertEqual(response.status_code, 200, response.text)
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    def test_login_and_me(self):
        headers = self._login("admin@test.com", "admin")
        me = self.client.get("/auth/me", headers=headers).json()
        self.assertEqual(me["id"], "admin1")
        self.assertEqual(me["role"], "Admin")

    def test_login_failure(self):
        response = self.client.post("/auth/login", json={"email": "admin@test.com", "password": "nope"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["kind"], "InvalidCredentials")
        self.assertEqual(self.client.get("/auth/me").status_code, 401)

    def test_register_and_refresh(self):
        body = {"name": "Dana", "email": "dana@test.com", "password": "secret"}
        tokens = self.client.post("/auth/register", json=body).json()
        self.assertEqual(tokens["user"]["role"], "Student")

        duplicate = self.client.post("/auth/register", json=body)
        self.assertEqual(duplicate.status_code, 409)
        self.assertEqual(duplicate.json()["kind"], "DuplicateEmail")

        refreshed = self.client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        self.assertEqual(refreshed.status_code, 200)
        self.assertEqual(refreshed.json()["user"]["email"], "dana@test.com")

    def test_refresh_after_account_removed(self):
        body = {"name": "Dana", "email": "dana@test.com", "password": "secret"}
        tokens = self.client.post("/auth/register", json=body).json()
        self.assertEqual(self.client.delete(f"/users/{tokens['user']['id']}").status_code, 204)

        refreshed = self.client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        self.assertEqual(refreshed.status_code, 401)
        self.assertEqual(refreshed.json()["kind"], "InvalidCredentials")

    def test_logins_are_independent(self):
        student = self._login("student@test.com", "password")
        teacher = self._login("teacher@test.com", "password")
        self.assertIsNone(self.client.app.state.repositories.identity.current_user)
        self.assertEqual(self.client.get("/auth/me", headers=student).json()["id"], "student1")
        self.assertEqual(self.client.get("/auth/me", headers=teacher).json()["id"], "teacher1")

    def test_published_courses(self):
        courses = self.client.get("/courses/").json()
        self.assertEqual({c["id"] for c in courses}, {"course1", "course2"})
        self.assertTrue(all(c["teacher_name"] == "Alice Teacher" for c in courses))
        self.assertEqual(self.client.get("/courses/nope").status_code, 404)

    def test_course_and_lesson_flow(self):
        headers = self._login("teacher@test.com", "password")
        created = self.client.post(
            "/courses/",
            data={"title": "Python", "description": "Basics"},
            files={"image": ("cover.png", b"cover", "image/png")},
            headers=headers,
        )
        self.assertEqual(created.status_code, 200, created.text)
        course = created.json()
        self.assertEqual(course["status"], "Draft")
        self.assertEqual(course["teacher_id"], "teacher1")
        self.assertTrue(course["image_ref"].startswith("store://"))
        self.assertNotIn(course["id"], [c["id"] for c in self.client.get("/courses/").json()])

        first = self.client.post(f"/courses/{course['id']}/lessons",
                                 data={"title": "Intro", "video_url_input": "https://video.test/1"}).json()
        second = self.client.post(f"/courses/{course['id']}/lessons",
                                  data={"title": "Loops"},
                                  files={"video_file": ("loops.mp4", b"\x00" * 64, "video/mp4")}).json()
        self.assertEqual(first["video_url"], "https://video.test/1")
        self.assertIsNone(second["video_url"])
        self.assertTrue(second["video_ref"].startswith("store://"))

        order = [second["id"], first["id"]]
        reordered = self.client.put(f"/courses/{course['id']}/lessons/order", json={"lesson_ids": order})
        self.assertEqual([lesson["id"] for lesson in reordered.json()], order)
        invalid = self.client.put(f"/courses/{course['id']}/lessons/order", json={"lesson_ids": [first["id"]]})
        self.assertEqual(invalid.status_code, 422)
        self.assertEqual(invalid.json()["kind"], "InvalidOrder")

        updated = self.client.put(f"/courses/{course['id']}/lessons/{first['id']}",
                                  data={"title": "Intro", "video_removed": "true"}).json()
        self.assertIsNone(updated["video_url"])

        published = self.client.patch(f"/courses/{course['id']}", data={"status": "Published"})
        self.assertEqual(published.json()["status"], "Published")
        self.assertIn(course["id"], [c["id"] for c in self.client.get("/courses/").json()])

        self.assertEqual(self.client.delete(f"/courses/{course['id']}/lessons/{first['id']}").status_code, 204)
        self.assertEqual(self.client.delete(f"/courses/{course['id']}").status_code, 204)
        self.assertEqual(self.client.get(f"/courses/{course['id']}").status_code, 404)

    def test_lesson_url_must_be_a_web_address(self):
        response = self.client.put("/courses/course1/lessons/l1-2",
                                   data={"title": "Understanding JSX", "video_url_input": "javascript:alert(1)"})
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["kind"], "ValidationError")
        lesson = self.client.get("/courses/course1").json()["lessons"][1]
        self.assertNotEqual(lesson["video_url"], "javascript:alert(1)")

    def test_enrollment_flow(self):
        headers = self._login("student2@test.com", "password")
        created = self.client.post("/enrollments/", json={"course_id": "course2"}, headers=headers)
        self.assertEqual(created.json()["status"], "Pending")
        again = self.client.post("/enrollments/", json={"course_id": "course2"}, headers=headers)
        self.assertEqual(again.status_code, 409)

        approved = self.client.patch(f"/enrollments/{created.json()['id']}", json={"status": "Approved"})
        self.assertEqual(approved.json()["status"], "Approved")
        mine = self.client.get("/enrollments/mine/courses", headers=headers).json()
        self.assertEqual([c["id"] for c in mine], ["course2"])
        status = self.client.get("/enrollments/mine", params={"course_id": "course1"}, headers=headers).json()
        self.assertEqual(status["status"], "Pending")

        details = self.client.get("/enrollments/").json()
        self.assertIn("Charlie Student", [d["student_name"] for d in details])

    def test_reviews(self):
        headers = self._login("student@test.com", "password")
        bad = self.client.post("/reviews/", json={"course_id": "course1", "rating": 9}, headers=headers)
        self.assertEqual(bad.status_code, 422)
        self.assertEqual(bad.json()["kind"], "InvalidRating")
        good = self.client.post("/reviews/", json={"course_id": "course1", "rating": 4, "comment": "ok"},
                                headers=headers)
        self.assertEqual(good.json()["student_id"], "student1")
        self.assertEqual(len(self.client.get("/reviews/course/course1").json()), 2)

    def test_users(self):
        self.assertEqual(len(self.client.get("/users/").json()), 4)
        updated = self.client.patch("/users/student1", data={"name": "Bobby"},
                                    files={"photo": ("me.png", b"png", "image/png")}).json()
        self.assertEqual(updated["name"], "Bobby")
        resolved = self.client.get("/media/resolve", params={"ref": updated["profile_photo_ref"]}).json()
        self.assertTrue(resolved["url"].startswith("file://"))

        self.assertEqual(self.client.delete("/users/student2").status_code, 204)
        self.assertEqual(self.client.get("/users/student2").status_code, 404)
        self.assertEqual(self.client.delete("/users/student2").status_code, 404)

    def test_media_resolve(self):
        external = self.client.get("/media/resolve", params={"ref": "https://example.com/x.png"}).json()
        self.assertEqual(external["url"], "https://example.com/x.png")
        missing = self.client.get("/media/resolve", params={"ref": "store://nothing/here.png"})
        self.assertEqual(missing.status_code, 404)


if __name__ == '__main__':
    unittest.main()
