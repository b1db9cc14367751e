"""
Sanctuary Backend — Sermon Endpoint Tests
===========================================

What:  /api/sermons including multipart upload and the audio file lifecycle.
How:   Full HTTP stack against SQLite; audio lands in the test UPLOAD_DIR
       owned by the module-level media_service.

What we test:
    ✅ Upload creates the record, stores the file and serves it under /mp3
    ✅ Cap: 9 existing → accepted, 10 existing → 400 and no file left behind
    ✅ Disallowed MIME type → 415, nothing stored
    ✅ Update keeps mp3Url; delete removes record and file
    ✅ Delete with the audio file missing → 500 and the record is kept
    ✅ Cancellation or a failed rename discards the staged upload
    ✅ Lists newest first; limit/{n} defaults to 3
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from sanctuary.exceptions import FileStorageError, LimitExceededError
from sanctuary.models.sermon import Sermon
from sanctuary.schemas.sermon import SermonFields
from sanctuary.services.media_service import STAGING_PREFIX, media_service
from sanctuary.services.sermon_service import SermonService, build_media_url


def _form(title="Living Water", date="2026-03-01T10:00:00Z"):
    return {"title": title, "scripture": "John 4:1-26", "speaker": "Rev. Okafor", "date": date}


def _staged_files():
    return [p for p in media_service.upload_dir.iterdir() if p.name.startswith(STAGING_PREFIX)]


async def _seed(session_factory, count):
    base = datetime(2025, 1, 5, 10, 0, tzinfo=timezone.utc)
    async with session_factory() as session:
        for i in range(count):
            session.add(Sermon(
                title=f"Sermon {i}",
                scripture="Psalm 23",
                speaker="Guest",
                date=base + timedelta(weeks=i),
                mp3_url=f"http://test/mp3/seed-{i}.mp3",
            ))
        await session.commit()


async def _upload(test_client, auth_headers, mp3_bytes, filename="Living Water.mp3", content_type="audio/mpeg", **form):
    return await test_client.post(
        "/api/sermons",
        data=_form(**form),
        files={"mp3": (filename, mp3_bytes, content_type)},
        headers=auth_headers,
    )


class TestSermonCreate:

    @pytest.mark.asyncio
    async def test_upload_creates_record_and_file(self, test_client, auth_headers, sample_mp3_bytes):
        response = await _upload(test_client, auth_headers, sample_mp3_bytes)

        assert response.status_code == 201
        body = response.json()
        sermon = body["sermon"]
        assert sermon["id"] == body["id"]
        assert sermon["title"] == "Living Water"
        assert sermon["mp3Url"] == "http://test/mp3/living-watermp3.mp3"
        assert (media_service.upload_dir / "living-watermp3.mp3").read_bytes() == sample_mp3_bytes
        assert _staged_files() == []

        audio = await test_client.get("/mp3/living-watermp3.mp3")
        assert audio.status_code == 200
        assert audio.headers["content-type"] == "audio/mpeg"
        assert audio.content == sample_mp3_bytes

    @pytest.mark.asyncio
    async def test_ninth_plus_one_is_accepted(self, test_client, auth_headers, session_factory, sample_mp3_bytes):
        await _seed(session_factory, 9)

        response = await _upload(test_client, auth_headers, sample_mp3_bytes, filename="tenth.mp3")

        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_limit_reached(self, test_client, auth_headers, session_factory, sample_mp3_bytes):
        await _seed(session_factory, 10)

        response = await _upload(test_client, auth_headers, sample_mp3_bytes, filename="eleventh.mp3")

        assert response.status_code == 400
        assert response.json()["message"] == (
            "You have reached your limit for sermons. Your account only allows 10 sermons at a time."
        )
        assert not (media_service.upload_dir / "eleventhmp3.mp3").exists()
        assert _staged_files() == []
        async with session_factory() as session:
            assert (await session.execute(select(func.count(Sermon.id)))).scalar_one() == 10

    @pytest.mark.asyncio
    async def test_disallowed_type(self, test_client, auth_headers, session_factory, sample_mp3_bytes):
        response = await _upload(
            test_client, auth_headers, sample_mp3_bytes, filename="hymn.wav", content_type="audio/wav"
        )

        assert response.status_code == 415
        assert response.json()["error"] == "unsupported_media_type"
        assert not (media_service.upload_dir / "hymnwav.mp3").exists()
        async with session_factory() as session:
            assert (await session.execute(select(func.count(Sermon.id)))).scalar_one() == 0

    @pytest.mark.asyncio
    async def test_empty_file(self, test_client, auth_headers):
        response = await _upload(test_client, auth_headers, b"", filename="silence.mp3")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_file(self, test_client, auth_headers):
        response = await test_client.post("/api/sermons", data=_form(), headers=auth_headers)

        assert response.status_code == 422


class TestSermonReadUpdateDelete:

    @pytest.mark.asyncio
    async def test_list_newest_first_and_limit(self, test_client, session_factory):
        await _seed(session_factory, 5)

        sermons = (await test_client.get("/api/sermons")).json()["sermons"]
        assert [s["title"] for s in sermons] == ["Sermon 4", "Sermon 3", "Sermon 2", "Sermon 1", "Sermon 0"]

        latest = (await test_client.get("/api/sermons/limit/2")).json()["sermons"]
        assert [s["title"] for s in latest] == ["Sermon 4", "Sermon 3"]

        defaulted = (await test_client.get("/api/sermons/limit/test")).json()["sermons"]
        assert len(defaulted) == 3

        everything = await test_client.get("/api/sermons/limit/99999999999999999999")
        assert everything.status_code == 200
        assert len(everything.json()["sermons"]) == 5

    @pytest.mark.asyncio
    async def test_get_unknown(self, test_client):
        response = await test_client.get("/api/sermons/7d1c7d7e-5a2b-4c9e-9d55-4f1e2b3c4d5e")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_keeps_audio(self, test_client, auth_headers, sample_mp3_bytes):
        created = (await _upload(test_client, auth_headers, sample_mp3_bytes, filename="update-me.mp3")).json()

        response = await test_client.put(
            f"/api/sermons/{created['id']}",
            json={"title": "Renamed", "scripture": "Mark 1", "speaker": "Elder Lee", "date": "2026-03-08T10:00:00Z"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        sermon = response.json()["sermon"]
        assert sermon["title"] == "Renamed"
        assert sermon["speaker"] == "Elder Lee"
        assert sermon["mp3Url"] == created["sermon"]["mp3Url"]

    @pytest.mark.asyncio
    async def test_delete_removes_file_and_record(self, test_client, auth_headers, sample_mp3_bytes):
        created = (await _upload(test_client, auth_headers, sample_mp3_bytes, filename="goodbye.mp3")).json()
        stored = media_service.upload_dir / "goodbyemp3.mp3"
        assert stored.exists()

        response = await test_client.delete(f"/api/sermons/{created['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"result": {"deletedCount": 1}}
        assert not stored.exists()
        assert (await test_client.get(f"/api/sermons/{created['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_with_missing_file_keeps_record(self, test_client, auth_headers, sample_mp3_bytes):
        created = (await _upload(test_client, auth_headers, sample_mp3_bytes, filename="vanished.mp3")).json()
        (media_service.upload_dir / "vanishedmp3.mp3").unlink()

        response = await test_client.delete(f"/api/sermons/{created['id']}", headers=auth_headers)

        assert response.status_code == 500
        assert (await test_client.get(f"/api/sermons/{created['id']}")).status_code == 200

    @pytest.mark.asyncio
    async def test_delete_unknown(self, test_client, auth_headers):
        response = await test_client.delete(
            "/api/sermons/7d1c7d7e-5a2b-4c9e-9d55-4f1e2b3c4d5e",
            headers=auth_headers,
        )
        assert response.status_code == 404


class TestSermonServiceUnit:

    def test_build_media_url(self):
        assert build_media_url("http://localhost:3000/", "grace.mp3") == "http://localhost:3000/mp3/grace.mp3"
        assert build_media_url("http://localhost:3000", "a b.mp3") == "http://localhost:3000/mp3/a%20b.mp3"

    @pytest.mark.asyncio
    async def test_limit_discards_staged_upload(self, mock_db_session, test_settings):
        upload = _FakeUpload()
        mock_db_session.execute.return_value.scalar_one.return_value = 10
        service = SermonService(config=test_settings)

        with pytest.raises(LimitExceededError):
            await service.create_sermon(mock_db_session, fields=None, upload=upload, base_url="http://test/")

        assert upload.discarded is True
        assert upload.committed is False
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancellation_discards_staged_upload(self, mock_db_session, test_settings):
        upload = _FakeUpload()
        mock_db_session.execute.return_value.scalar_one.return_value = 0
        mock_db_session.flush.side_effect = asyncio.CancelledError()
        service = SermonService(config=test_settings)

        with pytest.raises(asyncio.CancelledError):
            await service.create_sermon(
                mock_db_session, fields=SermonFields.model_validate(_form()), upload=upload, base_url="http://test/"
            )

        assert upload.discarded is True
        assert upload.committed is False

    @pytest.mark.asyncio
    async def test_failed_rename_discards_staged_upload(self, mock_db_session, test_settings):
        upload = _FakeUpload(fail_commit=True)
        mock_db_session.execute.return_value.scalar_one.return_value = 0
        service = SermonService(config=test_settings)

        with pytest.raises(FileStorageError):
            await service.create_sermon(
                mock_db_session, fields=SermonFields.model_validate(_form()), upload=upload, base_url="http://test/"
            )

        assert upload.discarded is True


class _FakeUpload:
    filename = "fake.mp3"

    def __init__(self, fail_commit=False):
        self.fail_commit = fail_commit
        self.committed = False
        self.discarded = False

    async def commit(self):
        if self.fail_commit:
            raise FileStorageError(message="Failed to save the uploaded audio file. Please try again.")
        self.committed = True

    async def discard(self):
        self.discarded = True
