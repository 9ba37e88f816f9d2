"""
Behaviour every backend must share. Concrete test cases mix this in next to
IsolatedAsyncioTestCase and provide `open_backend()`.
"""
from itertools import permutations
from unittest.mock import patch

from pydantic import ValidationError

from yaymon.errors import (
    AlreadyEnrolled,
    DuplicateEmail,
    InvalidCredentials,
    InvalidOrder,
    InvalidRating,
    MediaUploadFailed,
    NotFound,
    StorageUnavailable,
)
from yaymon.models import CourseStatus, EnrollmentStatus, Role
from yaymon.schemas import (
    CourseCreateRequest,
    CourseUpdateRequest,
    LessonPayload,
    MediaUpdate,
    UserUpdateRequest,
)
from yaymon.schemas.media import is_store_ref, store_ref
from yaymon.utils.utils import make_lesson_media_path

from tests.helpers import IMAGE_BYTES, upload

COURSE1_LESSONS = ["l1-1", "l1-2", "l1-3"]


class RepositoryContract:

    async def open_backend(self):
        raise NotImplementedError

    async def asyncSetUp(self):
        self.repos = await self.open_backend()

    async def asyncTearDown(self):
        await self.repos.close()

    async def _lesson_ids(self, course_id="course1"):
        course = await self.repos.courses.get_by_id(course_id)
        return [lesson.id for lesson in course.lessons]

    async def _new_course(self, status=CourseStatus.draft, **kwargs):
        payload = CourseCreateRequest(title="Testing 101", description="Tests", status=status, **kwargs)
        return await self.repos.courses.create(payload, "teacher1")

    # --- seeding ---

    async def test_seed_shape(self):
        users = {u.id: u for u in await self.repos.identity.list_all()}
        self.assertEqual(set(users), {"admin1", "teacher1", "student1", "student2"})
        self.assertEqual(users["admin1"].role, Role.admin)
        self.assertEqual(users["teacher1"].role, Role.teacher)
        self.assertEqual(users["student2"].role, Role.student)

        published = await self.repos.courses.list_published()
        self.assertEqual({c.id for c in published}, {"course1", "course2"})
        self.assertEqual(await self._lesson_ids("course1"), COURSE1_LESSONS)
        self.assertEqual(await self._lesson_ids("course2"), ["l2-1", "l2-2"])

        enrollments = {e.id: e.status for e in await self.repos.enrollments.list_all()}
        self.assertEqual(enrollments, {"enroll1": EnrollmentStatus.approved, "enroll2": EnrollmentStatus.pending})
        reviews = await self.repos.reviews.list_for_course("course1")
        self.assertEqual([r.rating for r in reviews], [5])

    async def test_seed_credentials(self):
        admin = await self.repos.identity.authenticate("admin@test.com", "admin")
        self.assertEqual(admin.id, "admin1")
        teacher = await self.repos.identity.authenticate("teacher@test.com", "password")
        self.assertEqual(teacher.name, "Alice Teacher")

    async def test_seed_media_is_stored_and_resolves(self):
        teacher = await self.repos.identity.get("teacher1")
        self.assertTrue(is_store_ref(teacher.profile_photo_ref))
        first = await self.repos.blobs.resolve(teacher.profile_photo_ref)
        second = await self.repos.blobs.resolve(teacher.profile_photo_ref)
        self.assertTrue(first)
        self.assertTrue(second)
        self.assertEqual(await self.repos.blobs.read(teacher.profile_photo_ref), IMAGE_BYTES)

        course = await self.repos.courses.get_by_id("course1")
        self.assertTrue(is_store_ref(course.image_ref))

    # --- identity ---

    async def test_authenticate_rejects_bad_credentials(self):
        with self.assertRaises(InvalidCredentials):
            await self.repos.identity.authenticate("admin@test.com", "wrong")
        with self.assertRaises(InvalidCredentials):
            await self.repos.identity.authenticate("nobody@test.com", "admin")
        # emails are matched exactly
        with self.assertRaises(InvalidCredentials):
            await self.repos.identity.authenticate("ADMIN@test.com", "admin")
        self.assertIsNone(self.repos.identity.current_user)

    async def test_verify_credentials_leaves_session_alone(self):
        await self.repos.identity.authenticate("student@test.com", "password")
        teacher = await self.repos.identity.verify_credentials("teacher@test.com", "password")
        self.assertEqual(teacher.id, "teacher1")
        self.assertEqual(self.repos.identity.current_user.id, "student1")
        with self.assertRaises(InvalidCredentials):
            await self.repos.identity.verify_credentials("teacher@test.com", "wrong")
        self.assertEqual(self.repos.identity.current_user.id, "student1")

    async def test_register_assigns_student_role_and_placeholder_photo(self):
        user = await self.repos.identity.register("Dana", "dana@test.com", "secret")
        self.assertEqual(user.role, Role.student)
        self.assertTrue(user.profile_photo_ref.startswith("https://"))
        self.assertEqual((await self.repos.identity.authenticate("dana@test.com", "secret")).id, user.id)

    async def test_register_duplicate_email(self):
        await self.repos.identity.register("Dana", "dana@test.com", "secret")
        with self.assertRaises(DuplicateEmail):
            await self.repos.identity.register("Other Dana", "dana@test.com", "secret2")
        matching = [u for u in await self.repos.identity.list_all() if u.email == "dana@test.com"]
        self.assertEqual(len(matching), 1)
        self.assertEqual(matching[0].name, "Dana")

    async def test_create_with_role(self):
        user = await self.repos.identity.create("Eve", "eve@test.com", "secret", Role.teacher)
        self.assertEqual((await self.repos.identity.get(user.id)).role, Role.teacher)

    async def test_session_identity_and_listeners(self):
        seen = []
        unsubscribe = self.repos.identity.on_auth_state_changed(seen.append)
        await self.repos.identity.authenticate("student@test.com", "password")
        self.assertEqual(self.repos.identity.current_user.id, "student1")
        self.repos.identity.sign_out()
        unsubscribe()
        await self.repos.identity.authenticate("admin@test.com", "admin")
        self.assertEqual([u.id if u else None for u in seen], [None, "student1", None])

    async def test_update_user_fields_and_password(self):
        updated = await self.repos.identity.update("student1", {"name": "Robert", "password": "newpass"})
        self.assertEqual(updated.name, "Robert")
        await self.repos.identity.authenticate("student@test.com", "newpass")

        # empty password keeps the stored credential
        await self.repos.identity.update("student1", UserUpdateRequest(name="Bob", password=""))
        await self.repos.identity.authenticate("student@test.com", "newpass")
        self.assertEqual((await self.repos.identity.get("student1")).name, "Bob")

    async def test_update_user_photo_upload(self):
        photo = upload("me.png", b"new-photo", "image/png")
        updated = await self.repos.identity.update("student2", photo=photo)
        self.assertTrue(is_store_ref(updated.profile_photo_ref))
        self.assertEqual(await self.repos.blobs.read(updated.profile_photo_ref), b"new-photo")
        self.assertTrue(await self.repos.blobs.resolve(updated.profile_photo_ref))

    async def test_update_user_email_conflict(self):
        with self.assertRaises(DuplicateEmail):
            await self.repos.identity.update("student2", {"email": "student@test.com"})
        self.assertEqual((await self.repos.identity.get("student2")).email, "student2@test.com")

    async def test_update_refreshes_signed_in_user(self):
        await self.repos.identity.authenticate("student@test.com", "password")
        await self.repos.identity.update("student1", {"name": "Bobby"})
        self.assertEqual(self.repos.identity.current_user.name, "Bobby")

    async def test_update_missing_user(self):
        with self.assertRaises(NotFound):
            await self.repos.identity.update("ghost", {"name": "Ghost"})

    async def test_remove_user(self):
        photo_ref = (await self.repos.identity.get("student2")).profile_photo_ref
        await self.repos.identity.remove("student2")
        self.assertIsNone(await self.repos.identity.get("student2"))
        with self.assertRaises(NotFound):
            await self.repos.blobs.read(photo_ref)
        with self.assertRaises(NotFound):
            await self.repos.identity.remove("student2")

    # --- courses ---

    async def test_draft_excluded_until_published(self):
        course = await self._new_course()
        self.assertNotIn(course.id, [c.id for c in await self.repos.courses.list_published()])
        self.assertIn(course.id, [c.id for c in await self.repos.courses.list_by_teacher("teacher1")])

        await self.repos.courses.update(course.id, CourseUpdateRequest(status=CourseStatus.published))
        self.assertIn(course.id, [c.id for c in await self.repos.courses.list_published()])

    async def test_update_course_fields_keeps_lessons(self):
        updated = await self.repos.courses.update("course1", CourseUpdateRequest(title="React Basics"))
        self.assertEqual(updated.title, "React Basics")
        self.assertEqual(updated.description, "Learn the fundamentals of React, including components, state, "
                                              "props, and hooks.")
        self.assertEqual([lesson.id for lesson in updated.lessons], COURSE1_LESSONS)

    async def test_course_image_upload(self):
        course = await self._new_course(image=upload("cover.png", b"cover", "image/png"))
        self.assertTrue(is_store_ref(course.image_ref))
        self.assertEqual(await self.repos.blobs.read(course.image_ref), b"cover")

        updated = await self.repos.courses.update(course.id, CourseUpdateRequest(
            image=upload("cover2.png", b"cover-2", "image/png")))
        self.assertEqual(await self.repos.blobs.read(updated.image_ref), b"cover-2")
        with self.assertRaises(NotFound):
            await self.repos.blobs.read(course.image_ref)

    async def test_update_missing_course(self):
        with self.assertRaises(NotFound):
            await self.repos.courses.update("nope", CourseUpdateRequest(title="x"))

    async def test_failed_image_upload_writes_no_course(self):
        before = len(await self.repos.courses.list_all())
        with patch.object(self.repos.blobs, "put", side_effect=MediaUploadFailed("storage down")):
            with self.assertRaises(MediaUploadFailed):
                await self._new_course(image=upload("cover.png", b"cover", "image/png"))
            with self.assertRaises(MediaUploadFailed):
                await self.repos.courses.update("course1", CourseUpdateRequest(
                    title="Renamed", image=upload("cover2.png", b"cover-2", "image/png")))
        self.assertEqual(len(await self.repos.courses.list_all()), before)
        course = await self.repos.courses.get_by_id("course1")
        self.assertEqual(course.title, "Introduction to React")

    async def test_delete_course_removes_lessons_and_media(self):
        course = await self._new_course(image=upload("cover.png", b"cover"))
        lesson = await self.repos.courses.add_lesson(course.id, LessonPayload(
            title="Intro", video=MediaUpdate.replace_with_file(upload("intro.mp4", b"video"))))

        await self.repos.courses.delete(course.id)
        self.assertIsNone(await self.repos.courses.get_by_id(course.id))
        self.assertNotIn(course.id, [c.id for c in await self.repos.courses.list_all()])
        with self.assertRaises(NotFound):
            await self.repos.blobs.read(lesson.video_ref)
        with self.assertRaises(NotFound):
            await self.repos.blobs.read(course.image_ref)
        with self.assertRaises(NotFound):
            await self.repos.courses.delete(course.id)

    async def test_courses_with_teacher(self):
        joined = {c.id: c for c in await self.repos.courses.list_published_with_teacher()}
        self.assertEqual(joined["course1"].teacher_name, "Alice Teacher")
        self.assertEqual(joined["course1"].teacher_photo_ref,
                         (await self.repos.identity.get("teacher1")).profile_photo_ref)

        orphan = await self.repos.courses.create(
            CourseCreateRequest(title="Orphan", status=CourseStatus.published), "student1")
        view = await self.repos.courses.get_with_teacher(orphan.id)
        self.assertEqual(view.teacher_name, "Unknown")
        self.assertIsNone(view.teacher_photo_ref)
        self.assertIsNone(await self.repos.courses.get_with_teacher("nope"))

    # --- lessons ---

    async def test_add_lesson_appends(self):
        lesson = await self.repos.courses.add_lesson("course1", LessonPayload(title="Hooks", duration="30 minutes"))
        self.assertEqual(await self._lesson_ids(), COURSE1_LESSONS + [lesson.id])
        with self.assertRaises(NotFound):
            await self.repos.courses.add_lesson("nope", LessonPayload(title="x"))

    async def test_update_lesson_with_video_file(self):
        lesson = await self.repos.courses.update_lesson("course1", "l1-2", LessonPayload(
            title="Understanding JSX",
            video=MediaUpdate.from_form(upload=upload("jsx.mp4", b"\x00" * 2048, "video/mp4"),
                                        url="https://video.test/jsx"),
        ))
        self.assertTrue(is_store_ref(lesson.video_ref))
        self.assertIsNone(lesson.video_url)
        self.assertAlmostEqual(lesson.video_size, 2048 / (1024 * 1024))

        stored = (await self.repos.courses.get_by_id("course1")).lessons[1]
        self.assertEqual(stored.id, "l1-2")
        self.assertEqual(stored.video_ref, lesson.video_ref)
        self.assertIsNone(stored.video_url)
        self.assertEqual(await self._lesson_ids(), COURSE1_LESSONS)

    async def test_switch_lesson_video_to_url_discards_file(self):
        with_file = await self.repos.courses.update_lesson("course1", "l1-1", LessonPayload(
            title="Welcome", video=MediaUpdate.replace_with_file(upload("welcome.mp4", b"v1"))))
        with_url = await self.repos.courses.update_lesson("course1", "l1-1", LessonPayload(
            title="Welcome", video=MediaUpdate.replace_with_url("https://video.test/welcome")))
        self.assertEqual(with_url.video_url, "https://video.test/welcome")
        self.assertIsNone(with_url.video_ref)
        self.assertIsNone(with_url.video_size)
        with self.assertRaises(NotFound):
            await self.repos.blobs.read(with_file.video_ref)

    async def test_attachment_keep_and_remove(self):
        attached = await self.repos.courses.update_lesson("course1", "l1-3", LessonPayload(
            title="Components", attachment=MediaUpdate.replace_with_file(upload("notes.pdf", b"pdf"))))
        self.assertEqual(attached.file_name, "notes.pdf")

        kept = await self.repos.courses.update_lesson("course1", "l1-3", LessonPayload(title="Components v2"))
        self.assertEqual(kept.attachment_ref, attached.attachment_ref)
        self.assertEqual(kept.title, "Components v2")

        removed = await self.repos.courses.update_lesson("course1", "l1-3", LessonPayload(
            title="Components v2", attachment=MediaUpdate.from_form(removed=True, upload=upload("x.pdf"))))
        self.assertIsNone(removed.attachment_ref)
        self.assertIsNone(removed.file_name)
        self.assertIsNone(removed.file_size)

    async def test_update_missing_lesson(self):
        with self.assertRaises(NotFound):
            await self.repos.courses.update_lesson("course1", "nope", LessonPayload(title="x"))
        with self.assertRaises(NotFound):
            await self.repos.courses.update_lesson("nope", "l1-1", LessonPayload(title="x"))

    async def test_failed_lesson_upload_leaves_lesson_untouched(self):
        before = (await self.repos.courses.get_by_id("course1")).lessons[1]
        with patch.object(self.repos.blobs, "put", side_effect=MediaUploadFailed("storage down")):
            with self.assertRaises(MediaUploadFailed):
                await self.repos.courses.update_lesson("course1", "l1-2", LessonPayload(
                    title="Renamed", video=MediaUpdate.replace_with_file(upload("new.mp4", b"video"))))
        self.assertEqual((await self.repos.courses.get_by_id("course1")).lessons[1], before)

    async def test_failed_lesson_write_discards_new_upload(self):
        new_video = store_ref(make_lesson_media_path("course1", "l1-2", "video", "new.mp4"))
        with patch.object(self.repos.courses, "_mutate_lessons", side_effect=StorageUnavailable("db down")):
            with self.assertRaises(StorageUnavailable):
                await self.repos.courses.update_lesson("course1", "l1-2", LessonPayload(
                    title="Renamed", video=MediaUpdate.replace_with_file(upload("new.mp4", b"video"))))
            with self.assertRaises(StorageUnavailable):
                await self.repos.courses.add_lesson("course1", LessonPayload(
                    title="Extra", attachment=MediaUpdate.replace_with_file(upload("extra.pdf", b"pdf"))))
        with self.assertRaises(NotFound):
            await self.repos.blobs.read(new_video)
        self.assertEqual(await self._lesson_ids(), COURSE1_LESSONS)

    async def test_lesson_url_must_be_a_web_address(self):
        for url in ("store://users/admin1/photo/photo.jpg", "javascript:alert(1)"):
            with self.assertRaises(ValidationError):
                await self.repos.courses.update_lesson("course1", "l1-2", LessonPayload(
                    title="Renamed", video=MediaUpdate.replace_with_url(url)))
        stored = (await self.repos.courses.get_by_id("course1")).lessons[1]
        self.assertEqual(stored.title, "Understanding JSX")
        self.assertFalse(is_store_ref(stored.video_url))

    async def test_delete_lesson_keeps_remaining_order(self):
        await self.repos.courses.delete_lesson("course1", "l1-2")
        self.assertEqual(await self._lesson_ids(), ["l1-1", "l1-3"])
        added = await self.repos.courses.add_lesson("course1", LessonPayload(title="State"))
        self.assertEqual(await self._lesson_ids(), ["l1-1", "l1-3", added.id])
        with self.assertRaises(NotFound):
            await self.repos.courses.delete_lesson("course1", "l1-2")

    async def test_reorder_reads_back_every_permutation(self):
        for order in permutations(COURSE1_LESSONS):
            returned = await self.repos.courses.reorder_lessons("course1", list(order))
            self.assertEqual([lesson.id for lesson in returned], list(order))
            self.assertEqual(await self._lesson_ids(), list(order))

    async def test_reorder_after_add_and_delete(self):
        added = await self.repos.courses.add_lesson("course1", LessonPayload(title="Extra"))
        await self.repos.courses.delete_lesson("course1", "l1-1")
        order = [added.id, "l1-3", "l1-2"]
        await self.repos.courses.reorder_lessons("course1", order)
        self.assertEqual(await self._lesson_ids(), order)

    async def test_reorder_rejects_non_permutations(self):
        invalid = [
            ["l1-1", "l1-2"],
            ["l1-1", "l1-2", "l1-3", "ghost"],
            ["l1-1", "l1-2", "ghost"],
            ["l1-1", "l1-1", "l1-2"],
            [],
        ]
        for order in invalid:
            with self.assertRaises(InvalidOrder):
                await self.repos.courses.reorder_lessons("course1", order)
            self.assertEqual(await self._lesson_ids(), COURSE1_LESSONS)
        with self.assertRaises(NotFound):
            await self.repos.courses.reorder_lessons("nope", [])

    # --- enrollments ---

    async def test_double_enrollment(self):
        first = await self.repos.enrollments.create("student2", "course2")
        self.assertEqual(first.status, EnrollmentStatus.pending)
        with self.assertRaises(AlreadyEnrolled):
            await self.repos.enrollments.create("student2", "course2")
        records = [e for e in await self.repos.enrollments.list_all()
                   if e.student_id == "student2" and e.course_id == "course2"]
        self.assertEqual(len(records), 1)

    async def test_rejected_enrollment_is_not_resubmittable(self):
        enrollment = await self.repos.enrollments.create("student1", "course2")
        await self.repos.enrollments.set_status(enrollment.id, EnrollmentStatus.rejected)
        with self.assertRaises(AlreadyEnrolled):
            await self.repos.enrollments.create("student1", "course2")

    async def test_set_status_and_approved_courses(self):
        approved = await self.repos.enrollments.list_approved_courses_for_student("student2")
        self.assertEqual(approved, [])

        updated = await self.repos.enrollments.set_status("enroll2", EnrollmentStatus.approved)
        self.assertEqual(updated.status, EnrollmentStatus.approved)
        found = await self.repos.enrollments.get_for_student_and_course("student2", "course1")
        self.assertEqual(found.status, EnrollmentStatus.approved)

        approved = await self.repos.enrollments.list_approved_courses_for_student("student2")
        self.assertEqual([c.id for c in approved], ["course1"])
        self.assertEqual(approved[0].teacher_name, "Alice Teacher")
        self.assertEqual([lesson.id for lesson in approved[0].lessons], COURSE1_LESSONS)

        with self.assertRaises(NotFound):
            await self.repos.enrollments.set_status("nope", EnrollmentStatus.approved)

    async def test_enrollment_lookup_missing(self):
        self.assertIsNone(await self.repos.enrollments.get_for_student_and_course("student2", "course2"))

    async def test_enrollment_details(self):
        await self.repos.enrollments.create("student1", "ghost-course")
        details = {(d.student_id, d.course_id): d for d in await self.repos.enrollments.list_all_with_display_names()}
        self.assertEqual(details[("student1", "course1")].student_name, "Bob Student")
        self.assertEqual(details[("student1", "course1")].course_title, "Introduction to React")
        self.assertEqual(details[("student2", "course1")].student_name, "Charlie Student")
        self.assertEqual(details[("student1", "ghost-course")].course_title, "Unknown Course")

    # --- reviews ---

    async def test_add_review(self):
        review = await self.repos.reviews.add("student2", "course1", 4, "Nice")
        again = await self.repos.reviews.add("student2", "course1", 3)
        ids = [r.id for r in await self.repos.reviews.list_for_course("course1")]
        self.assertIn(review.id, ids)
        self.assertIn(again.id, ids)
        self.assertEqual(len(ids), 3)
        self.assertEqual(await self.repos.reviews.list_for_course("course2"), [])

    async def test_add_review_rejects_out_of_range_rating(self):
        for rating in (0, 6, -1, True):
            with self.assertRaises(InvalidRating):
                await self.repos.reviews.add("student2", "course1", rating)
        self.assertEqual(len(await self.repos.reviews.list_for_course("course1")), 1)

    # --- blobs ---

    async def test_resolve_external_and_missing_refs(self):
        self.assertIsNone(await self.repos.blobs.resolve(None))
        self.assertEqual(await self.repos.blobs.resolve("https://example.com/a.png"), "https://example.com/a.png")
        with self.assertRaises(NotFound):
            await self.repos.blobs.resolve("store://users/nobody/photo/none.png")

    async def test_put_overwrites_same_path(self):
        ref = await self.repos.blobs.put("misc/a.txt", b"one", "text/plain")
        self.assertEqual(await self.repos.blobs.put("misc/a.txt", b"two", "text/plain"), ref)
        self.assertEqual(await self.repos.blobs.read(ref), b"two")

    # --- live queries ---

    async def test_watch_delivers_initial_result(self):
        results = []
        unsubscribe = await self.repos.watch(self.repos.courses.list_published, results.append)
        self.assertEqual(len(results), 1)
        self.assertEqual({c.id for c in results[0]}, {"course1", "course2"})
        unsubscribe()
