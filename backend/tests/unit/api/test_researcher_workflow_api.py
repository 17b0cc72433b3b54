"""
Admin review of researcher applications
"""
from unittest.mock import AsyncMock, patch

from httpx import AsyncClient
from sqlalchemy import select

from conftest import TEST_PASSWORD, headers_for, make_user
from manuscript_portal.models import ApplicationStatus, AuditLog, ResearcherApplication, UserRole
from manuscript_portal.services.notification_service import notification_service


async def _application_for(db_session, user) -> ResearcherApplication:
    result = await db_session.execute(
        select(ResearcherApplication).where(ResearcherApplication.user_id == user.id)
    )
    return result.scalar_one()


class TestListApplications:

    async def test_lists_pending_with_applicant(self, client: AsyncClient, pending_applicant, admin_auth_headers):
        response = await client.get("/api/admin/researcher/requests", headers=admin_auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["user_email"] == pending_applicant.email
        assert data["items"][0]["status"] == "pending"

    async def test_status_filter(self, client: AsyncClient, pending_applicant, admin_auth_headers):
        response = await client.get(
            "/api/admin/researcher/requests", params={"status": "approved"}, headers=admin_auth_headers
        )

        assert response.json()["total"] == 0

    async def test_requires_admin(self, client: AsyncClient, researcher_headers):
        response = await client.get("/api/admin/researcher/requests", headers=researcher_headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "Forbidden: You do not have the required permission."


class TestDecisions:

    async def test_approve(self, client: AsyncClient, db_session, pending_applicant, admin_user, admin_auth_headers):
        application = await _application_for(db_session, pending_applicant)

        response = await client.post(
            f"/api/admin/researcher/applications/{application.id}/approve",
            json={"note": "ID verified"},
            headers=admin_auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["role"] == "researcher"
        assert body["user"]["is_approved"] is True
        assert body["application"]["status"] == "approved"
        assert body["application"]["review_note"] == "ID verified"
        assert body["application"]["reviewed_by"] == str(admin_user.id)

        login = await client.post("/api/auth/login", json={
            "email": pending_applicant.email, "password": TEST_PASSWORD
        })
        assert login.status_code == 200

        logs = (await db_session.execute(select(AuditLog))).scalars().all()
        assert [log.action for log in logs] == ["researcher_approved"]

    async def test_approved_researcher_sees_researcher_routes_without_relogin(
        self, client: AsyncClient, db_session, pending_applicant, admin_auth_headers
    ):
        # Token minted before approval keeps working; role is read per request
        applicant_headers = headers_for(pending_applicant)
        application = await _application_for(db_session, pending_applicant)
        await client.post(f"/api/admin/researcher/applications/{application.id}/approve", headers=admin_auth_headers)

        response = await client.get("/api/manuscripts/researcher", headers=applicant_headers)

        assert response.status_code == 200

    async def test_reject_lets_signup_applicant_login_as_user(
        self, client: AsyncClient, db_session, pending_applicant, admin_auth_headers
    ):
        application = await _application_for(db_session, pending_applicant)

        response = await client.post(
            f"/api/admin/researcher/applications/{application.id}/reject", headers=admin_auth_headers
        )

        assert response.status_code == 200
        assert response.json()["user"]["role"] == "user"
        assert response.json()["application"]["status"] == "rejected"

        login = await client.post("/api/auth/login", json={
            "email": pending_applicant.email, "password": TEST_PASSWORD
        })
        assert login.status_code == 200

    async def test_cannot_decide_twice(self, client: AsyncClient, db_session, pending_applicant, admin_auth_headers):
        application = await _application_for(db_session, pending_applicant)
        url = f"/api/admin/researcher/applications/{application.id}"
        await client.post(f"{url}/approve", headers=admin_auth_headers)

        response = await client.post(f"{url}/reject", headers=admin_auth_headers)

        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_STATE_TRANSITION"

    async def test_invalid_and_unknown_application_id(self, client: AsyncClient, admin_auth_headers):
        bad = await client.post("/api/admin/researcher/applications/123/approve", headers=admin_auth_headers)
        missing = await client.post(
            "/api/admin/researcher/applications/9b2f5c1e-1111-4222-8333-444455556666/approve",
            headers=admin_auth_headers,
        )

        assert bad.status_code == 400
        assert missing.status_code == 404

    async def test_rejected_user_can_reapply(self, client: AsyncClient, db_session, pending_applicant, admin_auth_headers):
        application = await _application_for(db_session, pending_applicant)
        await client.post(f"/api/admin/researcher/applications/{application.id}/reject", headers=admin_auth_headers)

        response = await client.post(
            "/api/auth/apply-for-researcher",
            headers=headers_for(pending_applicant),
            data={"phone_number": "9876543210",
                  "research_description": "Second attempt with institutional affiliation letter."},
        )

        assert response.status_code == 201
        assert response.json()["id"] == str(application.id)
        assert response.json()["status"] == "pending"
        assert response.json()["review_note"] is None


class TestApprovalShortcut:

    async def test_is_approved_true_approves_pending_application(
        self, client: AsyncClient, db_session, pending_applicant, admin_auth_headers
    ):
        response = await client.put(
            f"/api/admin/researcher/approve/{pending_applicant.id}",
            json={"isApproved": True},
            headers=admin_auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Researcher approved"
        assert response.json()["user"]["role"] == "researcher"
        application = await _application_for(db_session, pending_applicant)
        assert application.status == ApplicationStatus.APPROVED

    async def test_suspend_existing_researcher(self, client: AsyncClient, researcher_user, admin_auth_headers):
        response = await client.put(
            f"/api/admin/researcher/approve/{researcher_user.id}",
            json={"is_approved": False},
            headers=admin_auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Researcher access suspended"

        blocked = await client.get("/api/manuscripts/researcher", headers=headers_for(researcher_user))
        assert blocked.status_code == 403
        assert blocked.json()["detail"] == (
            "Forbidden: Your researcher status is pending approval or has been rejected."
        )

    async def test_plain_user_is_not_a_researcher(self, client: AsyncClient, test_user, admin_auth_headers):
        response = await client.put(
            f"/api/admin/researcher/approve/{test_user.id}",
            json={"isApproved": True},
            headers=admin_auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "User is not a researcher"

    async def test_unknown_user(self, client: AsyncClient, admin_auth_headers):
        response = await client.put(
            "/api/admin/researcher/approve/9b2f5c1e-1111-4222-8333-444455556666",
            json={"isApproved": True},
            headers=admin_auth_headers,
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "User not found"


class TestRevoke:

    async def test_revoke_researcher(self, client: AsyncClient, db_session, researcher_user, admin_auth_headers):
        response = await client.post(
            f"/api/admin/researcher/{researcher_user.id}/revoke",
            json={"note": "Terms violated"},
            headers=admin_auth_headers,
        )

        assert response.status_code == 200
        await db_session.refresh(researcher_user)
        assert researcher_user.role == UserRole.USER

    async def test_revoke_non_researcher(self, client: AsyncClient, db_session, admin_auth_headers):
        user = await make_user(db_session)

        response = await client.post(f"/api/admin/researcher/{user.id}/revoke", headers=admin_auth_headers)

        assert response.status_code == 400


class TestDecisionEmails:

    async def test_approve_and_reject_mail_the_applicant(self, client: AsyncClient, db_session, pending_applicant,
                                                          admin_auth_headers):
        other = await make_user(db_session, is_approved=False)
        db_session.add(ResearcherApplication(
            user_id=other.id, phone_number="9876543210",
            research_description="Cataloguing Digambara commentaries.", via_signup=True,
        ))
        await db_session.commit()
        approved = await _application_for(db_session, pending_applicant)
        rejected = await _application_for(db_session, other)

        with patch.object(notification_service, "send_email", AsyncMock(return_value=True)) as send:
            await client.post(f"/api/admin/researcher/applications/{approved.id}/approve",
                              headers=admin_auth_headers)
            await client.post(f"/api/admin/researcher/applications/{rejected.id}/reject",
                              json={"note": "ID proof unreadable"}, headers=admin_auth_headers)

        assert send.await_count == 2
        (to_first, subject_first, _), _ = send.await_args_list[0]
        (to_second, subject_second, body_second), _ = send.await_args_list[1]
        assert (to_first, subject_first) == (pending_applicant.email, "Your researcher application was approved")
        assert (to_second, subject_second) == (other.email, "Your researcher application was not approved")
        assert "ID proof unreadable" in body_second

    async def test_revoke_mails_the_researcher(self, client: AsyncClient, researcher_user, admin_auth_headers):
        with patch.object(notification_service, "send_email", AsyncMock(return_value=True)) as send:
            response = await client.post(
                f"/api/admin/researcher/{researcher_user.id}/revoke",
                json={"note": "Terms violated"},
                headers=admin_auth_headers,
            )

        assert response.status_code == 200
        send.assert_awaited_once()
        to_email, subject, body = send.await_args.args
        assert to_email == researcher_user.email
        assert subject == "Your researcher access was revoked"
        assert "Terms violated" in body

    async def test_suspend_and_reinstate_do_not_mention_an_application(
        self, client: AsyncClient, researcher_user, admin_auth_headers
    ):
        with patch.object(notification_service, "send_email", AsyncMock(return_value=True)) as send:
            await client.put(f"/api/admin/researcher/approve/{researcher_user.id}",
                             json={"isApproved": False}, headers=admin_auth_headers)
            reinstate = await client.put(f"/api/admin/researcher/approve/{researcher_user.id}",
                                         json={"isApproved": True}, headers=admin_auth_headers)

        assert reinstate.json()["message"] == "Researcher access reinstated"
        subjects = [call.args[1] for call in send.await_args_list]
        assert subjects == ["Your researcher access was suspended", "Your researcher access was reinstated"]

    async def test_shortcut_on_pending_application_sends_decision(
        self, client: AsyncClient, pending_applicant, admin_auth_headers
    ):
        with patch.object(notification_service, "send_email", AsyncMock(return_value=True)) as send:
            await client.put(f"/api/admin/researcher/approve/{pending_applicant.id}",
                             json={"isApproved": False}, headers=admin_auth_headers)

        send.assert_awaited_once()
        assert send.await_args.args[1] == "Your researcher application was not approved"
