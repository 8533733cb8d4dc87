"""
Typed client of the back-office REST gateway.

Every payload crosses the wire through the same pydantic schemas the
service uses: requests are validated before anything is sent and
responses are decoded into response models, so a shape mismatch fails
here instead of leaking loosely-typed data into the views.
"""

from typing import Any, TypeVar

import httpx
import pydantic
import structlog

from backoffice.client.config import client_settings
from backoffice.client.session import Session
from backoffice.core.exceptions import (
    ERRORS_BY_CODE,
    BackofficeError,
    ServerError,
    TransportError,
    UnauthorizedError,
    ValidationError,
    error_for_status,
)
from backoffice.models.enrollment import EnrollmentStatus
from backoffice.schemas.auth import LoginRequest, LoginResponse
from backoffice.schemas.common import Page, SortDirection
from backoffice.schemas.course import CourseCreate, CourseResponse, CourseUpdate, PopularCourse
from backoffice.schemas.enrollment import EnrollmentCreate, EnrollmentResponse, EnrollmentUpdate
from backoffice.schemas.payment import PaymentCreate, PaymentResponse, PaymentUpdate
from backoffice.schemas.stats import (
    Activity,
    CourseStats,
    DashboardStats,
    EnrollmentStats,
    PaymentStats,
)
from backoffice.schemas.student import (
    ImportResult,
    StudentCreate,
    StudentDetailResponse,
    StudentResponse,
    StudentUpdate,
)

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=pydantic.BaseModel)


def field_errors_from(exc: pydantic.ValidationError) -> dict[str, str]:
    """Flatten pydantic errors into ``{field: message}`` using wire names."""
    errors = {}
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"]) or "__root__"
        errors.setdefault(field, error["msg"])
    return errors


def validate_input(schema: type[M], data: M | dict[str, Any]) -> M:
    """Validate console input against a request schema, before any network call."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except pydantic.ValidationError as exc:
        field_errors = field_errors_from(exc)
        raise ValidationError(
            "Please correct the highlighted fields",
            field_errors=field_errors,
        ) from exc


def _payload(model: pydantic.BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_unset=True)


class GatewayClient:
    """Async HTTP client of the gateway, bound to one session."""

    def __init__(
        self,
        session: Session,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.session = session
        self._http = httpx.AsyncClient(
            base_url=base_url or client_settings.API_URL,
            timeout=timeout or client_settings.REQUEST_TIMEOUT,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ============== Transport ==============

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        mutating: bool = False,
    ) -> httpx.Response:
        if mutating and not self.session.is_authenticated:
            raise UnauthorizedError("You must be signed in to perform this action")

        headers = self.session.headers()
        if files is not None:
            # httpx sets the multipart boundary itself
            headers.pop("Content-Type")

        try:
            response = await self._http.request(
                method,
                path,
                json=json,
                params=params,
                files=files,
                headers=headers,
            )
        except httpx.TransportError as exc:
            logger.warning("gateway_unreachable", method=method, path=path, error=str(exc))
            raise TransportError("The server cannot be reached", details=str(exc)) from exc

        if response.is_error:
            raise self._error_from(response)
        return response

    def _error_from(self, response: httpx.Response) -> BackofficeError:
        """Map a non-2xx response onto the error taxonomy."""
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        detail = body.get("detail") or body.get("message")
        errors = body.get("errors")
        field_errors: dict[str, str] = (
            {str(k): str(v) for k, v in errors.items()} if isinstance(errors, dict) else {}
        )
        if isinstance(detail, list):
            # FastAPI request validation: [{loc, msg, ...}]
            for item in detail:
                if not isinstance(item, dict):
                    continue
                loc = item.get("loc")
                parts = [str(part) for part in loc if part != "body"] if isinstance(loc, list) else []
                field_errors.setdefault(".".join(parts) or "__root__", str(item.get("msg", "")))
            detail = "Invalid data sent to the server"
        elif detail is not None and not isinstance(detail, str):
            detail = str(detail)
        message = detail or response.reason_phrase or f"HTTP {response.status_code}"

        code = body.get("code")
        error_class = (
            ERRORS_BY_CODE.get(code) if isinstance(code, str) else None
        ) or error_for_status(response.status_code)
        logger.warning(
            "gateway_request_failed",
            method=response.request.method,
            url=str(response.request.url),
            status_code=response.status_code,
            error=error_class.__name__,
            message=message,
        )

        if error_class is ValidationError:
            return ValidationError(message, field_errors=field_errors)
        error = error_class(message)
        if error_class is BackofficeError:
            error.status_code = response.status_code
        return error

    @staticmethod
    def _decode(schema: Any, response: httpx.Response) -> Any:
        """Parse a successful response body into ``schema`` or raise ``ServerError``."""
        try:
            return pydantic.TypeAdapter(schema).validate_json(response.content)
        except pydantic.ValidationError as exc:
            logger.error(
                "gateway_response_malformed",
                schema=str(schema),
                status_code=response.status_code,
                error=str(exc),
            )
            raise ServerError("Unexpected response from the server", details=str(exc)) from exc

    async def _get(self, path: str, schema: Any, params: dict[str, Any] | None = None) -> Any:
        response = await self._request("GET", path, params=params)
        return self._decode(schema, response)

    async def _send(self, method: str, path: str, schema: Any, json: Any = None) -> Any:
        response = await self._request(method, path, json=json, mutating=True)
        return self._decode(schema, response)

    async def _delete(self, path: str) -> None:
        await self._request("DELETE", path, mutating=True)

    # ============== Auth ==============

    async def login(self, email: str, password: str) -> LoginResponse:
        """Authenticate and open the session with the issued token."""
        credentials = validate_input(LoginRequest, {"email": email, "password": password})
        response = await self._request("POST", "/auth/login", json=credentials.model_dump())
        login = self._decode(LoginResponse, response)
        self.session.open(login.token, login.role, login.full_name)
        logger.info("session_opened", role=login.role.value)
        return login

    def logout(self) -> None:
        self.session.close()

    # ============== Students ==============

    async def list_students(
        self,
        *,
        page: int = 0,
        size: int = 10,
        sort_by: str = "idApprenant",
        sort_direction: SortDirection = SortDirection.ASC,
        search: str | None = None,
    ) -> Page[StudentResponse]:
        params = {
            "page": page,
            "size": size,
            "sortBy": sort_by,
            "sortDirection": SortDirection(sort_direction).value,
        }
        if search:
            params["search"] = search
        return await self._get("/apprenants", Page[StudentResponse], params)

    async def count_students(self) -> int:
        return await self._get("/apprenants/count", int)

    async def get_student(self, student_id: int) -> StudentDetailResponse:
        return await self._get(f"/apprenants/{student_id}", StudentDetailResponse)

    async def create_student(self, data: StudentCreate | dict[str, Any]) -> StudentResponse:
        student = validate_input(StudentCreate, data)
        return await self._send("POST", "/apprenants", StudentResponse, _payload(student))

    async def update_student(
        self, student_id: int, data: StudentUpdate | dict[str, Any]
    ) -> StudentResponse:
        changes = validate_input(StudentUpdate, data)
        return await self._send("PUT", f"/apprenants/{student_id}", StudentResponse, _payload(changes))

    async def delete_student(self, student_id: int) -> None:
        await self._delete(f"/apprenants/{student_id}")

    async def export_students(
        self,
        fmt: str = "csv",
        scope: str = "all",
        **list_params: Any,
    ) -> bytes:
        """Download an export; ``list_params`` use the wire query names."""
        response = await self._request(
            "GET",
            f"/apprenants/export/{fmt}/{scope}",
            params={k: v for k, v in list_params.items() if v is not None},
        )
        return response.content

    async def import_students(self, filename: str, content: bytes) -> ImportResult:
        response = await self._request(
            "POST",
            "/apprenants/import",
            files={"file": (filename, content)},
            mutating=True,
        )
        return self._decode(ImportResult, response)

    # ============== Courses ==============

    async def list_courses(self, search: str | None = None) -> list[CourseResponse]:
        params = {"search": search} if search else None
        return await self._get("/formations", list[CourseResponse], params)

    async def get_course(self, course_id: int) -> CourseResponse:
        return await self._get(f"/formations/{course_id}", CourseResponse)

    async def popular_courses(self, limit: int = 3) -> list[PopularCourse]:
        return await self._get("/formations/populaires", list[PopularCourse], {"limit": limit})

    async def create_course(self, data: CourseCreate | dict[str, Any]) -> CourseResponse:
        course = validate_input(CourseCreate, data)
        return await self._send("POST", "/formations", CourseResponse, _payload(course))

    async def update_course(
        self, course_id: int, data: CourseUpdate | dict[str, Any]
    ) -> CourseResponse:
        changes = validate_input(CourseUpdate, data)
        return await self._send("PUT", f"/formations/{course_id}", CourseResponse, _payload(changes))

    async def delete_course(self, course_id: int) -> None:
        await self._delete(f"/formations/{course_id}")

    # ============== Enrollments ==============

    async def list_enrollments(
        self,
        *,
        status: EnrollmentStatus | None = None,
        student_id: int | None = None,
        course_id: int | None = None,
    ) -> list[EnrollmentResponse]:
        params = {}
        if status is not None:
            params["statut"] = EnrollmentStatus(status).value
        if student_id is not None:
            params["apprenantId"] = student_id
        if course_id is not None:
            params["formationId"] = course_id
        return await self._get("/inscriptions", list[EnrollmentResponse], params)

    async def get_enrollment(self, enrollment_id: int) -> EnrollmentResponse:
        return await self._get(f"/inscriptions/{enrollment_id}", EnrollmentResponse)

    async def create_enrollment(
        self, data: EnrollmentCreate | dict[str, Any]
    ) -> EnrollmentResponse:
        enrollment = validate_input(EnrollmentCreate, data)
        return await self._send("POST", "/inscriptions", EnrollmentResponse, _payload(enrollment))

    async def update_enrollment(
        self, enrollment_id: int, data: EnrollmentUpdate | dict[str, Any]
    ) -> EnrollmentResponse:
        changes = validate_input(EnrollmentUpdate, data)
        return await self._send(
            "PUT", f"/inscriptions/{enrollment_id}", EnrollmentResponse, _payload(changes)
        )

    async def confirm_enrollment(self, enrollment_id: int) -> EnrollmentResponse:
        return await self._send("PUT", f"/inscriptions/{enrollment_id}/confirm", EnrollmentResponse)

    async def cancel_enrollment(self, enrollment_id: int) -> EnrollmentResponse:
        return await self._send("PUT", f"/inscriptions/{enrollment_id}/cancel", EnrollmentResponse)

    async def set_enrollment_pending(self, enrollment_id: int) -> EnrollmentResponse:
        return await self._send("PUT", f"/inscriptions/{enrollment_id}/pending", EnrollmentResponse)

    async def delete_enrollment(self, enrollment_id: int) -> None:
        await self._delete(f"/inscriptions/{enrollment_id}")

    # ============== Payments ==============

    async def list_payments(self, method: str | None = None) -> list[PaymentResponse]:
        params = {"modePaiement": method} if method else None
        return await self._get("/paiements", list[PaymentResponse], params)

    async def get_payment(self, payment_id: int) -> PaymentResponse:
        return await self._get(f"/paiements/{payment_id}", PaymentResponse)

    async def list_payments_by_enrollment(self, enrollment_id: int) -> list[PaymentResponse]:
        return await self._get(f"/paiements/inscription/{enrollment_id}", list[PaymentResponse])

    async def add_payment(self, data: PaymentCreate | dict[str, Any]) -> PaymentResponse:
        payment = validate_input(PaymentCreate, data)
        return await self._send("POST", "/paiements", PaymentResponse, _payload(payment))

    async def update_payment(
        self, payment_id: int, data: PaymentUpdate | dict[str, Any]
    ) -> PaymentResponse:
        changes = validate_input(PaymentUpdate, data)
        return await self._send("PUT", f"/paiements/{payment_id}", PaymentResponse, _payload(changes))

    async def delete_payment(self, payment_id: int) -> None:
        await self._delete(f"/paiements/{payment_id}")

    # ============== Statistics ==============

    async def dashboard_stats(self) -> DashboardStats:
        return await self._get("/stats/dashboard", DashboardStats)

    async def recent_activities(self, limit: int = 10) -> list[Activity]:
        return await self._get("/stats/activities", list[Activity], {"limit": limit})

    async def enrollment_stats(self) -> EnrollmentStats:
        return await self._get("/stats/inscriptions", EnrollmentStats)

    async def payment_stats(self) -> PaymentStats:
        return await self._get("/stats/paiements", PaymentStats)

    async def course_stats(self) -> list[CourseStats]:
        return await self._get("/stats/formations", list[CourseStats])
