import os
import pytest
from pathlib import Path
from unittest.mock import Mock, patch

from sqlalchemy import func, select

from models import MediaItem
from repositories.media_repository import MediaRepository
from schemas.form import FormField, MailerConfig
from schemas.upload import RawFile, UploadOptions, UploadResult
from services.local_upload_service import time_subdir
from services.private_upload_service import (
    CRON_ACTION,
    MAILER_COMPLETE,
    MAILER_FAILED,
    PrivateUploadService,
    delete_files_action,
    register_cleanup_action,
)

FIELD_ID = "fld_1001"


def private_options(form_id, field_id=FIELD_ID):
    return UploadOptions(private=True, field_id=field_id, form_id=form_id)


@pytest.mark.unit
class TestSecretDirectory:

    def test_name_is_stable(self, private_upload_service):
        first = private_upload_service.secret_dir("fld_1", "CF1")

        assert first == private_upload_service.secret_dir("fld_1", "CF1")
        assert len(first) == 32
        int(first, 16)

    def test_name_differs_per_field_and_form(self, private_upload_service):
        names = {
            private_upload_service.secret_dir("fld_1", "CF1"),
            private_upload_service.secret_dir("fld_2", "CF1"),
            private_upload_service.secret_dir("fld_1", "CF2"),
        }

        assert len(names) == 3

    def test_concatenation_does_not_collide(self, private_upload_service):
        assert private_upload_service.secret_dir("fld_1", "CF1") != private_upload_service.secret_dir("fld_1C", "F1")

    def test_name_depends_on_secret(self, uploader, mock_scheduler, hooks):
        other = PrivateUploadService(uploader, mock_scheduler, hooks, secret="another-salt")
        default = PrivateUploadService(uploader, mock_scheduler, hooks, secret="test-nonce-salt")

        assert other.secret_dir("fld_1", "CF1") != default.secret_dir("fld_1", "CF1")

    def test_path_is_below_uploads_base(self, private_upload_service, uploader):
        path = private_upload_service.secret_dir_path("fld_1", "CF1")

        assert path.parent == Path(uploader.base_dir)


@pytest.mark.unit
class TestPrivateUpload:

    def test_private_files_of_one_field_share_a_directory(self, private_upload_service, sample_form):
        options = private_options(sample_form.ID)

        first = private_upload_service.upload(RawFile(filename="a.txt", content=b"a"), options)
        second = private_upload_service.upload(RawFile(filename="b.txt", content=b"b"), options)

        expected = private_upload_service.secret_dir_path(FIELD_ID, sample_form.ID)
        assert Path(first.path).parent == expected
        assert Path(second.path).parent == expected
        assert first.url.endswith(f"/{expected.name}/a.txt")

    def test_private_upload_schedules_fallback_purge(self, private_upload_service, mock_scheduler, sample_form):
        private_upload_service.upload(RawFile(filename="a.txt", content=b"a"), private_options(sample_form.ID))

        mock_scheduler.schedule.assert_called_once_with(3600, CRON_ACTION, [FIELD_ID, sample_form.ID])

    def test_purge_is_scheduled_even_when_transfer_fails(self, private_upload_service, mock_scheduler, sample_form):
        result = private_upload_service.upload(RawFile(filename="a.txt", content=b""), private_options(sample_form.ID))

        assert not result.ok
        mock_scheduler.schedule.assert_called_once()

    def test_upload_errors_are_returned_unchanged(self, uploader, mock_scheduler, hooks):
        failure = UploadResult(error="disk full")
        uploader.transfer = Mock(return_value=failure)
        service = PrivateUploadService(uploader, mock_scheduler, hooks, secret="s")

        assert service.upload(RawFile(filename="a.txt", content=b"a"), private_options("CF1")) is failure

    def test_public_upload_goes_to_dated_directory(self, private_upload_service, mock_scheduler, uploader):
        result = private_upload_service.upload(RawFile(filename="a.txt", content=b"a"), UploadOptions())

        assert result.ok
        assert Path(result.path).parent == Path(uploader.base_dir) / time_subdir()
        mock_scheduler.schedule.assert_not_called()

    @pytest.mark.parametrize("options", [
        UploadOptions(private=True, field_id="", form_id="CF1"),
        UploadOptions(private=True, field_id="fld_1", form_id=None),
        UploadOptions(private=False, field_id="fld_1", form_id="CF1"),
    ])
    def test_incomplete_private_request_is_public(self, private_upload_service, mock_scheduler, uploader, options):
        result = private_upload_service.upload(RawFile(filename="a.txt", content=b"a"), options)

        assert Path(result.path).parent == Path(uploader.base_dir) / time_subdir()
        mock_scheduler.schedule.assert_not_called()

    def test_override_does_not_leak_to_later_uploads(self, private_upload_service, uploader, sample_form):
        private_upload_service.upload(RawFile(filename="a.txt", content=b"a"), private_options(sample_form.ID))

        public = uploader.transfer(RawFile(filename="b.txt", content=b"b", form_action="upload"))

        assert Path(public.path).parent == Path(uploader.base_dir)

    def test_private_upload_skips_form_marker_check(self, private_upload_service, sample_form):
        result = private_upload_service.upload(RawFile(filename="a.txt", content=b"a"), private_options(sample_form.ID))

        assert result.ok


@pytest.mark.unit
class TestPurge:

    def _store(self, service, form_id, field_id=FIELD_ID):
        return service.upload(RawFile(filename="a.txt", content=b"a"), private_options(form_id, field_id))

    def test_purge_deletes_directory(self, private_upload_service):
        self._store(private_upload_service, "CF1")
        directory = private_upload_service.secret_dir_path(FIELD_ID, "CF1")

        assert private_upload_service.purge(FIELD_ID, "CF1") is True
        assert not directory.exists()

    def test_purge_is_idempotent(self, private_upload_service):
        self._store(private_upload_service, "CF1")

        assert private_upload_service.purge(FIELD_ID, "CF1") is True
        assert private_upload_service.purge(FIELD_ID, "CF1") is False

    def test_purge_of_missing_directory(self, private_upload_service):
        assert private_upload_service.purge("fld_never", "CF_never") is False

    def test_purge_leaves_other_fields_alone(self, private_upload_service):
        self._store(private_upload_service, "CF1", "fld_a")
        self._store(private_upload_service, "CF1", "fld_b")

        private_upload_service.purge("fld_a", "CF1")

        assert private_upload_service.secret_dir_path("fld_b", "CF1").is_dir()

    def test_purge_reraises_unexpected_errors(self, private_upload_service):
        self._store(private_upload_service, "CF1")

        with patch("pathlib.Path.rmdir", side_effect=PermissionError("denied")):
            with pytest.raises(PermissionError):
                private_upload_service.purge(FIELD_ID, "CF1")

    def test_cleanup_via_cron(self, private_upload_service):
        self._store(private_upload_service, "CF1")

        assert private_upload_service.cleanup_via_cron([FIELD_ID, "CF1"]) is True
        assert not private_upload_service.secret_dir_path(FIELD_ID, "CF1").exists()

    @pytest.mark.parametrize("args", [None, [], ["fld_1"]])
    def test_cleanup_via_cron_ignores_bad_arguments(self, private_upload_service, args):
        assert private_upload_service.cleanup_via_cron(args) is False


@pytest.mark.unit
class TestSubmissionCleanup:

    def _store_all(self, service, form):
        for field_id in ("fld_1001", "fld_1002"):
            service.upload(RawFile(filename="a.txt", content=b"a"), private_options(form.ID, field_id))

    def test_cleanup_without_mail_purges_private_file_fields(self, private_upload_service, sample_form):
        self._store_all(private_upload_service, sample_form)

        purged = private_upload_service.cleanup(sample_form)

        assert purged == ["fld_1001"]
        assert not private_upload_service.secret_dir_path("fld_1001", sample_form.ID).exists()
        # Plain file fields are not private file fields
        assert private_upload_service.secret_dir_path("fld_1002", sample_form.ID).exists()

    def test_cleanup_with_mail_waits_for_mailer(self, private_upload_service, hooks, sample_form):
        form = sample_form.model_copy(update={"mailer": MailerConfig(on_insert=True)})
        self._store_all(private_upload_service, form)
        directory = private_upload_service.secret_dir_path("fld_1001", form.ID)

        assert private_upload_service.cleanup(form) == []
        assert directory.exists()
        assert hooks.has_action(MAILER_COMPLETE)
        assert hooks.has_action(MAILER_FAILED)

        hooks.do_action(MAILER_COMPLETE, {"subject": "New entry"}, {"fld_1003": "Jane"}, form)

        assert not directory.exists()

    def test_mail_failure_also_purges(self, private_upload_service, hooks, sample_form):
        form = sample_form.model_copy(update={"mailer": MailerConfig(on_insert=True)})
        self._store_all(private_upload_service, form)

        private_upload_service.cleanup(form)
        hooks.do_action(MAILER_FAILED, {}, {}, form)

        assert not private_upload_service.secret_dir_path("fld_1001", form.ID).exists()

    def test_repeated_deferral_registers_once(self, private_upload_service, hooks, sample_form):
        form = sample_form.model_copy(update={"mailer": MailerConfig(on_insert=True)})

        private_upload_service.cleanup(form)
        private_upload_service.cleanup(form)

        assert hooks.do_action(MAILER_COMPLETE, {}, {}, form) == 1

    def test_second_run_purges_even_when_form_mails(self, private_upload_service, sample_form):
        form = sample_form.model_copy(update={"mailer": MailerConfig(on_insert=True)})
        self._store_all(private_upload_service, form)

        assert private_upload_service.delete_after_mail({}, {}, form) == ["fld_1001"]

    def test_failed_purge_does_not_stop_other_fields(self, private_upload_service, sample_form):
        form = sample_form.model_copy(update={"fields": {
            "f1": FormField(ID="f1", type="advanced_file"),
            "f2": FormField(ID="f2", type="advanced_file"),
        }})
        for field_id in ("f1", "f2"):
            private_upload_service.upload(RawFile(filename="a.txt", content=b"a"), private_options(form.ID, field_id))
        (private_upload_service.secret_dir_path("f1", form.ID) / "nested").mkdir()

        purged = private_upload_service.cleanup(form)

        assert purged == ["f2"]
        assert private_upload_service.secret_dir_path("f1", form.ID).exists()
        assert not private_upload_service.secret_dir_path("f2", form.ID).exists()

    def test_cleanup_after_cron_already_ran(self, private_upload_service, sample_form):
        self._store_all(private_upload_service, sample_form)
        private_upload_service.cleanup_via_cron(["fld_1001", sample_form.ID])

        assert private_upload_service.cleanup(sample_form) == []


@pytest.mark.unit
class TestMediaLibrary:

    def test_add_to_media_library(self, db_session, uploader, mock_scheduler, hooks):
        service = PrivateUploadService(
            uploader, mock_scheduler, hooks, media_repository=MediaRepository(db_session), secret="s"
        )
        upload = service.upload(RawFile(filename="report.final.pdf", content=b"%PDF-1.4"), UploadOptions())

        item = service.add_to_media_library(upload)

        assert item.title == "report.final"
        assert item.guid == upload.path
        assert item.url == upload.url
        assert item.mime_type == "application/pdf"
        assert item.status == "inherit"
        assert item.attachment_metadata == {
            "file": f"{time_subdir()}/report.final.pdf",
            "filesize": 8,
        }

    def test_adding_same_upload_twice_reuses_item(self, db_session, uploader, mock_scheduler, hooks):
        repository = MediaRepository(db_session)
        service = PrivateUploadService(uploader, mock_scheduler, hooks, media_repository=repository, secret="s")
        upload = service.upload(RawFile(filename="a.pdf", content=b"%PDF"), UploadOptions())

        first = service.add_to_media_library(upload)
        second = service.add_to_media_library(upload)

        assert first.id == second.id
        assert db_session.scalar(select(func.count()).select_from(MediaItem)) == 1

    def test_requires_repository(self, private_upload_service):
        upload = UploadResult(path="/tmp/a.pdf", url="http://testserver/uploads/a.pdf", type="application/pdf")

        with pytest.raises(RuntimeError):
            private_upload_service.add_to_media_library(upload)

    def test_rejects_private_upload(self, db_session, uploader, mock_scheduler, hooks):
        service = PrivateUploadService(
            uploader, mock_scheduler, hooks, media_repository=MediaRepository(db_session), secret="s"
        )
        upload = service.upload(RawFile(filename="scan.pdf", content=b"%PDF"), private_options("CF1"))
        assert upload.ok

        with pytest.raises(ValueError):
            service.add_to_media_library(upload)

        assert db_session.scalar(select(func.count()).select_from(MediaItem)) == 0

    def test_rejects_file_outside_dated_directories(self, db_session, uploader, mock_scheduler, hooks):
        service = PrivateUploadService(
            uploader, mock_scheduler, hooks, media_repository=MediaRepository(db_session), secret="s"
        )
        outside = UploadResult(path="/etc/passwd", url="http://testserver/passwd", type="text/plain")

        with pytest.raises(ValueError):
            service.add_to_media_library(outside)

    def test_rejects_failed_upload(self, db_session, uploader, mock_scheduler, hooks):
        service = PrivateUploadService(
            uploader, mock_scheduler, hooks, media_repository=MediaRepository(db_session), secret="s"
        )

        with pytest.raises(ValueError):
            service.add_to_media_library(UploadResult(error="File is empty."))


@pytest.mark.unit
class TestCleanupAction:

    def test_register_cleanup_action(self):
        scheduler = Mock()

        register_cleanup_action(scheduler)

        scheduler.register_action.assert_called_once_with(CRON_ACTION, delete_files_action)

    def test_delete_files_action_runs_cron_cleanup(self):
        service = Mock()

        with patch("services.private_upload_service.build_private_upload_service", return_value=service):
            delete_files_action(["fld_1", "CF1"])

        service.cleanup_via_cron.assert_called_once_with(["fld_1", "CF1"])


@pytest.mark.unit
def test_two_private_files_removed_on_completion(private_upload_service):
    from schemas.form import Form

    form = Form(
        ID="form9",
        fields={"f1": FormField(ID="f1", type="advanced_file")},
        mailer=MailerConfig(on_insert=False),
    )
    options = UploadOptions(private=True, field_id="f1", form_id="form9")
    first = private_upload_service.upload(RawFile(filename="one.txt", content=b"1"), options)
    second = private_upload_service.upload(RawFile(filename="two.txt", content=b"2"), options)
    directory = Path(first.path).parent
    assert Path(second.path).parent == directory

    assert private_upload_service.cleanup(form) == ["f1"]

    assert not directory.exists()
    assert not os.path.exists(first.path)
    assert not os.path.exists(second.path)
    # A late fallback run for the same pair is harmless
    assert private_upload_service.cleanup_via_cron(["f1", "form9"]) is False
