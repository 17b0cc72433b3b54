"""
Tests for manuscript listing, visibility and admin uploads
"""
from httpx import AsyncClient
from sqlalchemy import select

from conftest import PNG_BYTES, make_manuscript
from manuscript_portal.core.config import settings
from manuscript_portal.services.upload_storage import upload_storage
from manuscript_portal.models import (
    AccessRequest,
    AccessRequestStatus,
    Annotation,
    Manuscript,
    ManuscriptStatus,
    UploadType,
)

MISSING_ID = "9b2f5c1e-1111-4222-8333-444455556666"


def _png(name: str):
    return (name, PNG_BYTES, "image/png")


class TestListing:

    async def test_public_list_requires_login(self, client: AsyncClient):
        response = await client.get("/api/manuscripts/public")

        assert response.status_code == 401

    async def test_public_list_shows_only_published_normal(
        self, client: AsyncClient, db_session, auth_headers, public_manuscript, detailed_manuscript
    ):
        await make_manuscript(db_session, status=ManuscriptStatus.DRAFT)

        response = await client.get("/api/manuscripts/public", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == str(public_manuscript.id)

    async def test_public_list_filters(self, client: AsyncClient, db_session, auth_headers):
        await make_manuscript(db_session, title="Bhaktamara Stotra", category="Stotra", language="Sanskrit")
        await make_manuscript(db_session, title="Tattvartha Sutra", category="Philosophy", language="Sanskrit")
        await make_manuscript(db_session, title="Kalpa Sutra", category="Agama", language="Prakrit")

        by_category = await client.get("/api/manuscripts/public", params={"category": "Stotra"}, headers=auth_headers)
        by_language = await client.get("/api/manuscripts/public", params={"language": "Sanskrit"}, headers=auth_headers)
        by_search = await client.get("/api/manuscripts/public", params={"search": "sutra"}, headers=auth_headers)

        assert by_category.json()["total"] == 1
        assert by_language.json()["total"] == 2
        assert by_search.json()["total"] == 2

    async def test_pagination(self, client: AsyncClient, db_session, auth_headers):
        for _ in range(5):
            await make_manuscript(db_session)

        response = await client.get("/api/manuscripts/public", params={"page": 2, "page_size": 2}, headers=auth_headers)

        data = response.json()
        assert data["total"] == 5
        assert len(data["items"]) == 2
        assert data["total_pages"] == 3
        assert data["has_next"] is True
        assert data["has_previous"] is True

    async def test_featured_is_anonymous_and_public_only(self, client: AsyncClient, db_session):
        featured = await make_manuscript(db_session, is_featured=True)
        await make_manuscript(db_session, UploadType.DETAILED, is_featured=True)
        await make_manuscript(db_session)

        response = await client.get("/api/manuscripts/featured")

        assert response.status_code == 200
        assert [item["id"] for item in response.json()["items"]] == [str(featured.id)]
        assert response.json()["items"][0]["restricted"] is True

    async def test_researcher_list(self, client: AsyncClient, researcher_headers, public_manuscript, detailed_manuscript):
        response = await client.get("/api/manuscripts/researcher", headers=researcher_headers)

        assert response.status_code == 200
        assert response.json()["total"] == 2
        assert all(item["restricted"] is False for item in response.json()["items"])

    async def test_researcher_list_forbidden_for_normal_user(self, client: AsyncClient, auth_headers):
        response = await client.get("/api/manuscripts/researcher", headers=auth_headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "Forbidden: You do not have the required permission."

    async def test_admin_list_includes_drafts(self, client: AsyncClient, db_session, admin_auth_headers, public_manuscript):
        draft = await make_manuscript(db_session, status=ManuscriptStatus.DRAFT)

        everything = await client.get("/api/manuscripts/admin", headers=admin_auth_headers)
        drafts = await client.get("/api/manuscripts/admin", params={"status": "draft"}, headers=admin_auth_headers)

        assert everything.json()["total"] == 2
        assert [item["id"] for item in drafts.json()["items"]] == [str(draft.id)]


class TestGetManuscript:

    async def test_invalid_id(self, client: AsyncClient, auth_headers):
        response = await client.get("/api/manuscripts/not-a-uuid", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid ID format"

    async def test_missing(self, client: AsyncClient, auth_headers):
        response = await client.get(f"/api/manuscripts/{MISSING_ID}", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "Manuscript not found"

    async def test_normal_user_gets_restricted_view_of_detailed(self, client: AsyncClient, auth_headers, detailed_manuscript):
        response = await client.get(f"/api/manuscripts/{detailed_manuscript.id}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["restricted"] is True
        assert "images" not in data

    async def test_researcher_gets_full_detailed(self, client: AsyncClient, researcher_headers, detailed_manuscript):
        response = await client.get(f"/api/manuscripts/{detailed_manuscript.id}", headers=researcher_headers)

        data = response.json()
        assert data["restricted"] is False
        assert data["page_count"] == 3
        assert len(data["images"]) == 3

    async def test_approved_access_request_unlocks_detailed(
        self, client: AsyncClient, db_session, test_user, auth_headers, detailed_manuscript
    ):
        db_session.add(AccessRequest(
            user_id=test_user.id, manuscript_id=detailed_manuscript.id, status=AccessRequestStatus.APPROVED
        ))
        await db_session.commit()

        response = await client.get(f"/api/manuscripts/{detailed_manuscript.id}", headers=auth_headers)

        assert response.json()["restricted"] is False

    async def test_draft_hidden_from_others(self, client: AsyncClient, db_session, researcher_headers):
        draft = await make_manuscript(db_session, status=ManuscriptStatus.DRAFT)

        response = await client.get(f"/api/manuscripts/{draft.id}", headers=researcher_headers)

        assert response.status_code == 404


class TestUpload:

    async def test_upload_public(self, client: AsyncClient, admin_user, admin_auth_headers):
        response = await client.post(
            "/api/manuscripts/upload/public",
            data={"title": "Uttaradhyayana Sutra", "category": "Agama", "keywords": "agama, prakrit"},
            files={"thumbnail": _png("cover.png")},
            headers=admin_auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["upload_type"] == "normal"
        assert data["is_public"] is True
        assert data["status"] == "published"
        assert data["keywords"] == ["agama", "prakrit"]
        assert data["submitted_by"] == str(admin_user.id)
        assert data["thumbnail"].startswith(settings.UPLOAD_URL_PREFIX + "/thumbnails/")

        served = await client.get(data["thumbnail"])
        assert served.status_code == 200
        assert served.content == PNG_BYTES

    async def test_upload_requires_admin(self, client: AsyncClient, researcher_headers):
        response = await client.post(
            "/api/manuscripts/upload/public",
            data={"title": "Uttaradhyayana Sutra", "category": "Agama"},
            headers=researcher_headers,
        )

        assert response.status_code == 403

    async def test_upload_blank_category(self, client: AsyncClient, admin_auth_headers):
        response = await client.post(
            "/api/manuscripts/upload/public",
            data={"title": "Uttaradhyayana Sutra", "category": "   "},
            headers=admin_auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Validation failed"

    async def test_upload_detailed(self, client: AsyncClient, admin_auth_headers):
        response = await client.post(
            "/api/manuscripts/upload/detailed",
            data={"title": "Kalpasutra (Jaisalmer copy)", "category": "Agama", "date": "Samvat 1650"},
            files=[("images", _png("folio-1.png")), ("images", _png("folio-2.png")), ("thumbnail", _png("t.png"))],
            headers=admin_auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["upload_type"] == "detailed"
        assert data["is_public"] is False
        assert data["page_count"] == 2
        assert data["date"] == "Samvat 1650"

    async def test_upload_detailed_needs_pages(self, client: AsyncClient, admin_auth_headers):
        response = await client.post(
            "/api/manuscripts/upload/detailed",
            data={"title": "No pages", "category": "Agama"},
            headers=admin_auth_headers,
        )

        assert response.status_code == 400

    async def test_upload_rejects_bad_file_type(self, client: AsyncClient, admin_auth_headers):
        response = await client.post(
            "/api/manuscripts/upload/detailed",
            data={"title": "Bad file", "category": "Agama"},
            files=[("images", ("page.docx", b"PK..", "application/octet-stream"))],
            headers=admin_auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FILE_TYPE"


class TestUpdateAndDelete:

    async def test_admin_updates_and_appends_pages(self, client: AsyncClient, admin_auth_headers, detailed_manuscript):
        response = await client.put(
            f"/api/manuscripts/{detailed_manuscript.id}",
            data={"title": "Renamed", "is_featured": "true"},
            files=[("images", _png("folio-4.png"))],
            headers=admin_auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Renamed"
        assert data["is_featured"] is True
        assert data["page_count"] == 4

    async def test_new_thumbnail_replaces_old_file(self, client: AsyncClient, admin_auth_headers):
        created = await client.post(
            "/api/manuscripts/upload/public",
            data={"title": "Bhaktamara Stotra", "category": "Stotra"},
            files={"thumbnail": _png("old-cover.png")},
            headers=admin_auth_headers,
        )
        old_path = upload_storage.path_for_url(created.json()["thumbnail"])
        assert old_path.exists()

        response = await client.put(
            f"/api/manuscripts/{created.json()['id']}",
            files={"thumbnail": _png("new-cover.png")},
            headers=admin_auth_headers,
        )

        assert response.status_code == 200
        new_url = response.json()["thumbnail"]
        assert new_url != created.json()["thumbnail"]
        assert upload_storage.path_for_url(new_url).exists()
        assert not old_path.exists()

    async def test_page_limit(self, client: AsyncClient, db_session, admin_user, admin_auth_headers):
        full = await make_manuscript(
            db_session, UploadType.DETAILED, submitted_by=admin_user.id, pages=settings.MAX_MANUSCRIPT_PAGES
        )

        response = await client.put(
            f"/api/manuscripts/{full.id}", files=[("images", _png("extra.png"))], headers=admin_auth_headers
        )

        assert response.status_code == 400

    async def test_submitter_cannot_feature(self, client: AsyncClient, db_session, test_user, auth_headers):
        own = await make_manuscript(db_session, submitted_by=test_user.id)

        renamed = await client.put(f"/api/manuscripts/{own.id}", data={"title": "Mine"}, headers=auth_headers)
        featured = await client.put(f"/api/manuscripts/{own.id}", data={"is_featured": "true"}, headers=auth_headers)

        assert renamed.status_code == 200
        assert featured.status_code == 403

    async def test_other_user_cannot_edit(self, client: AsyncClient, researcher_headers, public_manuscript):
        response = await client.put(
            f"/api/manuscripts/{public_manuscript.id}", data={"title": "Hijack"}, headers=researcher_headers
        )

        assert response.status_code == 403

    async def test_delete_cascades(self, client: AsyncClient, db_session, researcher_user, admin_auth_headers,
                                   detailed_manuscript):
        db_session.add(Annotation(
            manuscript_id=detailed_manuscript.id, user_id=researcher_user.id, user_name=researcher_user.name,
            text="Colophon", page_number=1, x=0, y=0, width=10, height=10,
        ))
        await db_session.commit()

        response = await client.delete(f"/api/manuscripts/{detailed_manuscript.id}", headers=admin_auth_headers)

        assert response.status_code == 200
        assert (await db_session.execute(select(Manuscript))).scalars().all() == []
        assert (await db_session.execute(select(Annotation))).scalars().all() == []

    async def test_hidden_draft_is_not_found_for_edit_or_delete(self, client: AsyncClient, db_session,
                                                                researcher_headers):
        draft = await make_manuscript(db_session, status=ManuscriptStatus.DRAFT)

        updated = await client.put(f"/api/manuscripts/{draft.id}", data={"title": "x"}, headers=researcher_headers)
        deleted = await client.delete(f"/api/manuscripts/{draft.id}", headers=researcher_headers)

        assert updated.status_code == 404
        assert deleted.status_code == 404

    async def test_delete_forbidden(self, client: AsyncClient, researcher_headers, public_manuscript):
        response = await client.delete(f"/api/manuscripts/{public_manuscript.id}", headers=researcher_headers)

        assert response.status_code == 403


class TestFeaturedSignedIn:

    async def test_signed_in_reader_gets_full_view(self, client: AsyncClient, db_session, auth_headers):
        await make_manuscript(db_session, is_featured=True)

        response = await client.get("/api/manuscripts/featured", headers=auth_headers)

        assert response.json()["items"][0]["restricted"] is False
