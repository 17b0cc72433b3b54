"""
Tests for admin dashboard, user management, categories and audit logs
"""
from httpx import AsyncClient
from sqlalchemy import select

from conftest import TEST_PASSWORD, headers_for, make_manuscript, make_user
from manuscript_portal.models import ApplicationStatus, Manuscript, ResearcherApplication, UploadType, User, UserRole


class TestDashboard:

    async def test_counts(self, client: AsyncClient, db_session, admin_auth_headers, test_user, pending_applicant,
                          public_manuscript, detailed_manuscript):
        response = await client.get("/api/admin/dashboard", headers=admin_auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_users"] == 3
        assert data["users_by_role"] == {"user": 2, "researcher": 0, "admin": 1}
        assert data["pending_applications"] == 1
        assert data["total_manuscripts"] == 2
        assert data["manuscripts_by_type"] == {"normal": 1, "detailed": 1}
        assert data["open_help_requests"] == 0

    async def test_admin_only(self, client: AsyncClient, researcher_headers):
        response = await client.get("/api/admin/dashboard", headers=researcher_headers)

        assert response.status_code == 403


class TestUserManagement:

    async def test_list_with_filters(self, client: AsyncClient, admin_auth_headers, test_user, researcher_user):
        everyone = await client.get("/api/admin/users", headers=admin_auth_headers)
        researchers = await client.get("/api/admin/users", params={"role": "researcher"}, headers=admin_auth_headers)
        by_email = await client.get("/api/admin/users", params={"search": test_user.email},
                                    headers=admin_auth_headers)

        assert everyone.json()["total"] == 3
        assert [u["id"] for u in researchers.json()["items"]] == [str(researcher_user.id)]
        assert by_email.json()["items"][0]["email"] == test_user.email

    async def test_sorting(self, client: AsyncClient, admin_auth_headers, test_user, researcher_user):
        response = await client.get("/api/admin/users", params={"sort_by": "email", "sort_order": "asc"},
                                    headers=admin_auth_headers)

        emails = [u["email"] for u in response.json()["items"]]
        assert emails == sorted(emails)

    async def test_create_user(self, client: AsyncClient, admin_auth_headers):
        response = await client.post(
            "/api/admin/users",
            json={"name": "Muni Jinavijaya", "email": "Jinavijaya@Example.com",
                  "password": TEST_PASSWORD, "role": "researcher"},
            headers=admin_auth_headers,
        )

        login = await client.post("/api/auth/login",
                                  json={"email": "jinavijaya@example.com", "password": TEST_PASSWORD})

        assert response.status_code == 201
        assert response.json()["role"] == "researcher"
        assert response.json()["is_approved"] is True
        assert login.status_code == 200

    async def test_create_duplicate_email(self, client: AsyncClient, admin_auth_headers, test_user):
        response = await client.post(
            "/api/admin/users",
            json={"name": "Someone Else", "email": test_user.email, "password": TEST_PASSWORD},
            headers=admin_auth_headers,
        )

        assert response.status_code == 400

    async def test_update_user(self, client: AsyncClient, admin_auth_headers, test_user):
        response = await client.patch(
            f"/api/admin/users/{test_user.id}", json={"role": "researcher", "is_active": False},
            headers=admin_auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["role"] == "researcher"
        assert response.json()["is_active"] is False

    async def test_demoted_researcher_can_reapply(self, client: AsyncClient, db_session, admin_auth_headers):
        researcher = await make_user(db_session, role=UserRole.RESEARCHER)
        db_session.add(ResearcherApplication(
            user_id=researcher.id, phone_number="9876543210",
            research_description="Dating Shvetambara palm-leaf colophons.",
            status=ApplicationStatus.APPROVED,
        ))
        await db_session.commit()

        demote = await client.patch(f"/api/admin/users/{researcher.id}", json={"role": "user"},
                                    headers=admin_auth_headers)
        reapply = await client.post(
            "/api/auth/apply-for-researcher",
            headers=headers_for(researcher),
            data={"phone_number": "9876543210",
                  "research_description": "Dating Shvetambara palm-leaf colophons, second round."},
        )

        assert demote.status_code == 200
        assert demote.json()["role"] == "user"
        assert reapply.status_code == 201
        assert reapply.json()["status"] == "pending"

    async def test_promoting_applicant_approves_application(self, client: AsyncClient, db_session,
                                                            pending_applicant, admin_auth_headers):
        response = await client.patch(f"/api/admin/users/{pending_applicant.id}", json={"role": "researcher"},
                                      headers=admin_auth_headers)

        assert response.status_code == 200
        assert response.json()["is_approved"] is True
        application = (await db_session.execute(
            select(ResearcherApplication).where(ResearcherApplication.user_id == pending_applicant.id)
        )).scalar_one()
        await db_session.refresh(application)
        assert application.status == ApplicationStatus.APPROVED

        login = await client.post("/api/auth/login", json={
            "email": pending_applicant.email, "password": TEST_PASSWORD
        })
        assert login.status_code == 200

    async def test_deactivated_user_is_locked_out(self, client: AsyncClient, admin_auth_headers, test_user,
                                                  auth_headers):
        await client.patch(f"/api/admin/users/{test_user.id}", json={"is_active": False},
                           headers=admin_auth_headers)

        response = await client.get("/api/auth/me", headers=auth_headers)

        assert response.status_code == 403

    async def test_cannot_demote_self(self, client: AsyncClient, admin_user, admin_auth_headers):
        demote = await client.patch(f"/api/admin/users/{admin_user.id}", json={"role": "user"},
                                    headers=admin_auth_headers)
        deactivate = await client.patch(f"/api/admin/users/{admin_user.id}", json={"is_active": False},
                                        headers=admin_auth_headers)
        rename = await client.patch(f"/api/admin/users/{admin_user.id}", json={"name": "Chief Librarian"},
                                    headers=admin_auth_headers)

        assert demote.status_code == 400
        assert deactivate.status_code == 400
        assert rename.status_code == 200

    async def test_get_unknown_user(self, client: AsyncClient, admin_auth_headers):
        invalid = await client.get("/api/admin/users/123", headers=admin_auth_headers)
        missing = await client.get("/api/admin/users/9b2f5c1e-1111-4222-8333-444455556666",
                                   headers=admin_auth_headers)

        assert invalid.status_code == 400
        assert missing.status_code == 404

    async def test_delete_keeps_manuscripts(self, client: AsyncClient, db_session, admin_auth_headers):
        uploader = await make_user(db_session, role=UserRole.RESEARCHER)
        manuscript = await make_manuscript(db_session, UploadType.DETAILED, submitted_by=uploader.id, pages=1)

        response = await client.delete(f"/api/admin/users/{uploader.id}", headers=admin_auth_headers)

        assert response.status_code == 200
        assert (await db_session.execute(select(User).where(User.id == uploader.id))).scalar_one_or_none() is None
        kept = (await db_session.execute(select(Manuscript).where(Manuscript.id == manuscript.id))).scalar_one()
        await db_session.refresh(kept)
        assert kept.submitted_by is None

    async def test_cannot_delete_self(self, client: AsyncClient, admin_user, admin_auth_headers):
        response = await client.delete(f"/api/admin/users/{admin_user.id}", headers=admin_auth_headers)

        assert response.status_code == 400


class TestCategories:

    async def test_create_and_list(self, client: AsyncClient, admin_auth_headers):
        await client.post("/api/admin/categories", json={"name": "  Stotra  "}, headers=admin_auth_headers)
        await client.post("/api/admin/categories", json={"name": "Agama"}, headers=admin_auth_headers)

        response = await client.get("/api/categories")

        assert [c["name"] for c in response.json()] == ["Agama", "Stotra"]

    async def test_duplicate_is_case_insensitive(self, client: AsyncClient, admin_auth_headers):
        await client.post("/api/admin/categories", json={"name": "Agama"}, headers=admin_auth_headers)

        response = await client.post("/api/admin/categories", json={"name": "agama"}, headers=admin_auth_headers)

        assert response.status_code == 409

    async def test_delete(self, client: AsyncClient, admin_auth_headers):
        created = await client.post("/api/admin/categories", json={"name": "Kavya"}, headers=admin_auth_headers)

        response = await client.delete(f"/api/admin/categories/{created.json()['id']}", headers=admin_auth_headers)
        missing = await client.delete(f"/api/admin/categories/{created.json()['id']}", headers=admin_auth_headers)

        assert response.status_code == 200
        assert missing.status_code == 404
        assert (await client.get("/api/categories")).json() == []

    async def test_create_requires_admin(self, client: AsyncClient, auth_headers):
        response = await client.post("/api/admin/categories", json={"name": "Kavya"}, headers=auth_headers)

        assert response.status_code == 403


class TestAuditLogs:

    async def test_actions_are_recorded(self, client: AsyncClient, admin_user, admin_auth_headers, test_user):
        await client.post("/api/admin/categories", json={"name": "Agama"}, headers=admin_auth_headers)
        await client.patch(f"/api/admin/users/{test_user.id}", json={"name": "Renamed Reader"},
                           headers=admin_auth_headers)

        everything = await client.get("/api/admin/audit-logs", headers=admin_auth_headers)
        updates = await client.get("/api/admin/audit-logs", params={"action": "user_updated"},
                                   headers=admin_auth_headers)

        assert everything.json()["total"] == 2
        assert {log["action"] for log in everything.json()["items"]} == {"category_created", "user_updated"}
        entry = updates.json()["items"][0]
        assert entry["admin_email"] == admin_user.email
        assert entry["target_id"] == str(test_user.id)
        assert entry["details"]["new"] == {"name": "Renamed Reader"}
