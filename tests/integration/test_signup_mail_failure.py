"""
Signup behaviour when the mail transport is down.
"""
import pytest
from fastapi.testclient import TestClient

from authflow.container.container import Container
from authflow.main import create_app

from tests.factories.mail_factory import FailingMailSender
from tests.factories.user_factory import SignupPayloadFactory


@pytest.fixture
def failing_client(settings):
    container = Container(settings, mail_sender=FailingMailSender())
    with TestClient(create_app(settings=settings, container=container)) as test_client:
        yield test_client


@pytest.mark.integration
class TestSignupWithMailOutage:

    def test_account_created_and_failure_reported(self, failing_client):
        payload = SignupPayloadFactory()

        response = failing_client.post("/auth/signup", json=payload)

        assert response.status_code == 201
        body = response.json()
        assert body["verificationStatus"] == "failed"
        assert body["message"] == "account created, verification email failed, retry later"

        signin = failing_client.post(
            "/auth/signin", json={"email": payload["email"], "password": payload["password"]}
        )
        assert signin.status_code == 200

    def test_resend_reports_mail_failure(self, failing_client):
        payload = SignupPayloadFactory()
        failing_client.post("/auth/signup", json=payload)
        token = failing_client.post(
            "/auth/signin", json={"email": payload["email"], "password": payload["password"]}
        ).json()["token"]

        response = failing_client.post(
            "/auth/verification", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 502
        assert response.json()["message"] == "failed to send mail"
