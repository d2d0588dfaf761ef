import uuid
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase

from apps.workflow.models import AppError
from apps.workflow.services.error_persistence import persist_app_error


class PersistAppErrorTests(TestCase):
    def test_records_error_with_context(self):
        job_id = uuid.uuid4()
        try:
            raise RuntimeError("catalog unavailable")
        except RuntimeError as exc:
            error = persist_app_error(
                exc, kind="catalog_promotion", job_id=job_id, line_id="l1"
            )

        stored = AppError.objects.get()
        self.assertEqual(stored.pk, error.pk)
        self.assertEqual(stored.message, "catalog unavailable")
        self.assertEqual(stored.kind, "catalog_promotion")
        self.assertEqual(stored.job_id, job_id)
        self.assertEqual(stored.data["line_id"], "l1")
        self.assertIn("RuntimeError", stored.data["trace"])

    def test_empty_message_falls_back_to_class_name(self):
        error = persist_app_error(KeyError())
        self.assertEqual(error.message, "KeyError")

    def test_database_failure_is_logged_not_raised(self):
        with mock.patch.object(
            AppError.objects, "create", side_effect=DatabaseError("locked")
        ), self.assertLogs(
            "apps.workflow.services.error_persistence", level="ERROR"
        ):
            self.assertIsNone(persist_app_error(ValueError("x"), kind="notification"))
