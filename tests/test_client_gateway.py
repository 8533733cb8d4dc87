"""Tests for the console gateway client."""

from decimal import Decimal

import httpx
import pytest

from backoffice.client.actions import ActionRunner
from backoffice.client.gateway import GatewayClient
from backoffice.client.notifications import NotificationLevel, Notifier
from backoffice.client.session import Session
from backoffice.core.exceptions import (
    BackofficeError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ServerError,
    TransportError,
    UnauthorizedError,
    ValidationError,
)
from backoffice.core.permissions import Role
from backoffice.models.course import Course
from backoffice.models.enrollment import EnrollmentStatus
from backoffice.models.student import Student

NEW_STUDENT = {
    "nom": "Rasoa",
    "prenom": "Hery",
    "email": "hery@example.com",
    "cin": "CIN12345",
    "telephone": "034 11 222 33",
}


def mock_gateway(handler) -> GatewayClient:
    session = Session()
    session.open("token", Role.USER, "Sam Staff")
    return GatewayClient(
        session, base_url="http://test/api", transport=httpx.MockTransport(handler)
    )


class TestSession:
    """Tests for the session context."""

    def test_anonymous_headers(self):
        headers = Session().headers()
        assert headers["Cache-Control"] == "no-cache"
        assert headers["Pragma"] == "no-cache"
        assert "Authorization" not in headers

    def test_open_and_close(self):
        session = Session()
        session.open("abc", "ADMIN", "Ada Admin")
        assert session.is_authenticated
        assert session.role == Role.ADMIN
        assert session.headers()["Authorization"] == "Bearer abc"

        session.close()
        assert not session.is_authenticated
        assert session.full_name is None


class TestLogin:
    """Tests for opening a session through the gateway."""

    async def test_login_opens_session(self, gateway: GatewayClient, transport, admin_user):
        login = await gateway.login("ADMIN@example.com", "password123")

        assert login.role == Role.ADMIN
        assert gateway.session.full_name == "Ada Admin"
        assert gateway.session.is_authenticated

        await gateway.count_students()
        assert transport.requests[-1].headers["Authorization"] == f"Bearer {login.token}"

    async def test_wrong_password(self, gateway: GatewayClient, admin_user):
        with pytest.raises(UnauthorizedError) as exc_info:
            await gateway.login("admin@example.com", "wrong-password")
        assert exc_info.value.message == "Incorrect email or password"
        assert not gateway.session.is_authenticated

    async def test_logout(self, gateway: GatewayClient, admin_user):
        await gateway.login("admin@example.com", "password123")
        gateway.logout()

        with pytest.raises(UnauthorizedError):
            await gateway.delete_student(1)


class TestPreflightChecks:
    """Checks that fail before any request is sent."""

    async def test_mutation_requires_session(self, gateway: GatewayClient, transport):
        with pytest.raises(UnauthorizedError):
            await gateway.create_student(NEW_STUDENT)
        assert transport.requests == []

    async def test_invalid_input_not_sent(self, gateway: GatewayClient, transport, staff_user):
        await gateway.login("staff@example.com", "password123")
        sent = len(transport.requests)

        with pytest.raises(ValidationError) as exc_info:
            await gateway.create_student({**NEW_STUDENT, "email": "not-an-email", "cin": "12"})

        assert set(exc_info.value.field_errors) == {"email", "cin"}
        assert len(transport.requests) == sent

    async def test_payment_amount_must_be_positive(self, gateway: GatewayClient, staff_user):
        await gateway.login("staff@example.com", "password123")
        with pytest.raises(ValidationError) as exc_info:
            await gateway.add_payment(
                {"inscriptionId": 1, "montant": 0, "modePaiement": "cash", "module": "M1"}
            )
        assert "montant" in exc_info.value.field_errors


class TestRoundTrip:
    """Calls against the real routes."""

    async def test_student_crud(self, gateway: GatewayClient, admin_user):
        await gateway.login("admin@example.com", "password123")

        created = await gateway.create_student(NEW_STUDENT)
        assert created.phone == "0341122233"
        assert created.full_name == "Hery Rasoa"

        updated = await gateway.update_student(created.id, {"adresse": "Antsirabe"})
        assert updated.address == "Antsirabe"
        assert updated.email == "hery@example.com"

        page = await gateway.list_students(search="hery")
        assert [s.id for s in page.data] == [created.id]
        assert await gateway.count_students() == 1

        await gateway.delete_student(created.id)
        with pytest.raises(NotFoundError):
            await gateway.get_student(created.id)

    async def test_duplicate_email_is_conflict(
        self, gateway: GatewayClient, staff_user, student: Student
    ):
        await gateway.login("staff@example.com", "password123")
        with pytest.raises(ConflictError):
            await gateway.create_student({**NEW_STUDENT, "email": student.email})

    async def test_enrollment_and_ledger(
        self, gateway: GatewayClient, staff_user, student: Student, course: Course
    ):
        await gateway.login("staff@example.com", "password123")

        enrollment = await gateway.create_enrollment(
            {"apprenantId": student.id, "formationId": course.id}
        )
        assert enrollment.status == EnrollmentStatus.PENDING
        assert enrollment.remaining_balance == Decimal("500")

        payment = await gateway.add_payment({
            "inscriptionId": enrollment.id,
            "montant": "120.50",
            "modePaiement": "cash",
            "module": "Module 1",
        })
        assert payment.amount == Decimal("120.5")

        refreshed = await gateway.get_enrollment(enrollment.id)
        assert refreshed.total_paid == Decimal("120.5")
        assert refreshed.remaining_balance == Decimal("379.5")
        assert [p.id for p in await gateway.list_payments_by_enrollment(enrollment.id)] == [payment.id]

    async def test_invalid_transition_is_invalid_state(
        self, gateway: GatewayClient, staff_user, student: Student, course: Course
    ):
        await gateway.login("staff@example.com", "password123")
        enrollment = await gateway.create_enrollment(
            {"apprenantId": student.id, "formationId": course.id}
        )
        await gateway.cancel_enrollment(enrollment.id)

        with pytest.raises(InvalidStateError):
            await gateway.confirm_enrollment(enrollment.id)

    async def test_staff_cannot_delete_course(
        self, gateway: GatewayClient, staff_user, course: Course
    ):
        await gateway.login("staff@example.com", "password123")
        with pytest.raises(UnauthorizedError):
            await gateway.delete_course(course.id)

    async def test_import_is_multipart(self, gateway: GatewayClient, transport, staff_user):
        await gateway.login("staff@example.com", "password123")
        content = (
            "nom,prenom,email,telephone,adresse,dateNaissance,cin\n"
            "Rasoa,Hery,hery@example.com,,,,CIN12345\n"
        ).encode()

        result = await gateway.import_students("apprenants.csv", content)

        assert (result.total, result.inserted, result.skipped) == (1, 1, 0)
        assert transport.requests[-1].headers["Content-Type"].startswith("multipart/form-data")

    async def test_course_stats(self, gateway: GatewayClient, course: Course):
        stats = await gateway.course_stats()
        assert [(s.name, s.enrollment_count, s.outstanding) for s in stats] == [
            ("Python Fundamentals", 0, Decimal("0"))
        ]

    async def test_export_returns_bytes(self, gateway: GatewayClient, student: Student):
        content = await gateway.export_students("csv", "page", page=0, size=5)
        assert b"jean.rakoto@example.com" in content


class TestErrorMapping:
    """Tests for mapping non-2xx responses onto the error taxonomy."""

    async def test_pagination_taken_from_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["page"] == "0"
            assert request.url.params["sortDirection"] == "desc"
            return httpx.Response(200, json={
                "data": [],
                "pagination": {
                    "current_page": 0,
                    "page_size": 10,
                    "total_elements": 47,
                    "total_pages": 5,
                    "has_next": True,
                    "has_previous": False,
                    "first_page": True,
                    "last_page": False,
                },
            })

        async with mock_gateway(handler) as gateway:
            page = await gateway.list_students(sort_direction="DESC")
        assert page.pagination.total_pages == 5
        assert page.pagination.has_next

    async def test_fastapi_validation_details(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={"detail": [
                {"loc": ["body", "email"], "msg": "value is not a valid email address"},
            ]})

        async with mock_gateway(handler) as gateway:
            with pytest.raises(ValidationError) as exc_info:
                await gateway.create_student(NEW_STUDENT)
        assert exc_info.value.field_errors == {"email": "value is not a valid email address"}

    @pytest.mark.parametrize(
        "status_code, error_class",
        [
            (400, ConflictError),
            (403, UnauthorizedError),
            (404, NotFoundError),
            (503, ServerError),
        ],
    )
    async def test_status_without_code(self, status_code, error_class):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, text="oops")

        async with mock_gateway(handler) as gateway:
            with pytest.raises(error_class):
                await gateway.get_course(1)

    async def test_unmapped_status_keeps_code(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(418, json={"detail": "I'm a teapot"})

        async with mock_gateway(handler) as gateway:
            with pytest.raises(BackofficeError) as exc_info:
                await gateway.get_course(1)
        assert exc_info.value.status_code == 418
        assert exc_info.value.message == "I'm a teapot"

    async def test_code_wins_over_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(409, json={"detail": "Cancelled", "code": "invalid_state"})

        async with mock_gateway(handler) as gateway:
            with pytest.raises(InvalidStateError):
                await gateway.confirm_enrollment(1)

    async def test_unreachable_server(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_gateway(handler) as gateway:
            with pytest.raises(TransportError) as exc_info:
                await gateway.list_courses()
        assert exc_info.value.status_code == 0

    async def test_malformed_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"unexpected": True})

        async with mock_gateway(handler) as gateway:
            with pytest.raises(ServerError):
                await gateway.get_course(1)

    async def test_errors_list_does_not_break_mapping(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"message": "Invalid", "errors": ["email taken"]})

        async with mock_gateway(handler) as gateway:
            with pytest.raises(ConflictError) as exc_info:
                await gateway.get_course(1)
        assert exc_info.value.message == "Invalid"

    async def test_plain_string_validation_details(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={"detail": ["email is invalid", {"loc": "email"}]})

        async with mock_gateway(handler) as gateway:
            with pytest.raises(ValidationError) as exc_info:
                await gateway.get_course(1)
        assert exc_info.value.field_errors == {"__root__": ""}

    async def test_html_body_is_server_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>proxy</html>")

        async with mock_gateway(handler) as gateway:
            with pytest.raises(ServerError) as exc_info:
                await gateway.get_enrollment(1)
        assert exc_info.value.message == "Unexpected response from the server"

    async def test_empty_body_is_server_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(204)

        async with mock_gateway(handler) as gateway:
            with pytest.raises(ServerError):
                await gateway.confirm_enrollment(1)

    async def test_action_runner_reports_unreadable_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>proxy</html>")

        notifier = Notifier()
        async with mock_gateway(handler) as gateway:
            result = await ActionRunner(notifier).run(
                "confirm", lambda: gateway.confirm_enrollment(1)
            )

        assert result is None
        assert notifier.last.level == NotificationLevel.ERROR
        assert notifier.last.message == "Unexpected response from the server"
