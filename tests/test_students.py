"""Tests for Students API."""

from datetime import date

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.course import Course
from backoffice.models.enrollment import Enrollment
from backoffice.models.payment import Payment
from backoffice.models.student import Student
from tests.conftest import auth_header


# ============== Fixtures ==============


@pytest.fixture
async def many_students(db: AsyncSession) -> list[Student]:
    """Create 47 students with predictable names."""
    students = [
        Student(
            last_name=f"Nom{i:02d}",
            first_name=f"Prenom{i:02d}",
            email=f"student{i:02d}@example.com",
            cin=f"CIN{i:05d}",
        )
        for i in range(47)
    ]
    db.add_all(students)
    await db.commit()
    return students


def student_payload(**overrides) -> dict:
    payload = {
        "nom": "Rabe",
        "prenom": "Marie",
        "email": "marie.rabe@example.com",
        "telephone": "+261 34 00 000 01",
        "adresse": "Lot II A 12, Antananarivo",
        "dateNaissance": "1999-03-21",
        "cin": "201234567890",
    }
    payload.update(overrides)
    return payload


# ============== Test Classes ==============


class TestListStudents:
    """Tests for the paginated student list."""

    async def test_list_empty(self, client: AsyncClient, setup_database):
        response = await client.get("/api/apprenants")
        assert response.status_code == 200
        data = response.json()
        assert data["data"] == []
        assert data["pagination"]["total_elements"] == 0

    async def test_pagination_metadata(self, client: AsyncClient, many_students):
        response = await client.get("/api/apprenants", params={"page": 0, "size": 10})
        assert response.status_code == 200
        data = response.json()
        assert len(data["data"]) == 10
        assert data["pagination"] == {
            "current_page": 0,
            "page_size": 10,
            "total_elements": 47,
            "total_pages": 5,
            "has_next": True,
            "has_previous": False,
            "first_page": True,
            "last_page": False,
        }

    async def test_last_page(self, client: AsyncClient, many_students):
        response = await client.get("/api/apprenants", params={"page": 4, "size": 10})
        data = response.json()
        assert len(data["data"]) == 7
        assert data["pagination"]["last_page"] is True
        assert data["pagination"]["has_next"] is False

    async def test_sort_by_name_desc(self, client: AsyncClient, many_students):
        response = await client.get(
            "/api/apprenants",
            params={"sortBy": "nom", "sortDirection": "DESC", "size": 3},
        )
        names = [s["nom"] for s in response.json()["data"]]
        assert names == ["Nom46", "Nom45", "Nom44"]

    async def test_unknown_sort_field(self, client: AsyncClient, many_students):
        response = await client.get("/api/apprenants", params={"sortBy": "password"})
        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    async def test_search_is_case_insensitive(self, client: AsyncClient, many_students):
        response = await client.get("/api/apprenants", params={"search": "prenom1"})
        data = response.json()
        # Prenom10..Prenom19
        assert data["pagination"]["total_elements"] == 10
        assert all(s["prenom"].startswith("Prenom1") for s in data["data"])

    async def test_search_by_cin(self, client: AsyncClient, many_students):
        response = await client.get("/api/apprenants", params={"search": "cin00007"})
        data = response.json()
        assert [s["cin"] for s in data["data"]] == ["CIN00007"]

    @pytest.mark.parametrize("term, expected", [("i_b", "Ali_Ben"), ("t%p", "Cent%Pour")])
    async def test_search_wildcards_are_literal(
        self, client: AsyncClient, db: AsyncSession, term, expected
    ):
        db.add_all([
            Student(last_name="Ali_Ben", first_name="Sara", email="sara1@example.com", cin="CINW0001"),
            Student(last_name="AliXBen", first_name="Sara", email="sara2@example.com", cin="CINW0002"),
            Student(last_name="Cent%Pour", first_name="Luc", email="luc1@example.com", cin="CINW0003"),
            Student(last_name="CentXPour", first_name="Luc", email="luc2@example.com", cin="CINW0004"),
        ])
        await db.commit()

        response = await client.get("/api/apprenants", params={"search": term})
        assert [s["nom"] for s in response.json()["data"]] == [expected]

    async def test_size_above_maximum_rejected(self, client: AsyncClient, setup_database):
        response = await client.get("/api/apprenants", params={"size": 5000})
        assert response.status_code == 422

    async def test_count(self, client: AsyncClient, many_students):
        response = await client.get("/api/apprenants/count")
        assert response.status_code == 200
        assert response.json() == 47


class TestCreateStudent:
    """Tests for creating students."""

    async def test_create_student(self, client: AsyncClient, staff_token: str):
        response = await client.post(
            "/api/apprenants",
            json=student_payload(),
            headers=auth_header(staff_token),
        )
        assert response.status_code == 201
        data = response.json()
        assert data["idApprenant"] > 0
        assert data["nomComplet"] == "Marie Rabe"
        assert data["telephone"] == "+261340000001"
        assert data["dateNaissance"] == "1999-03-21"

    async def test_create_requires_token(self, client: AsyncClient, setup_database):
        response = await client.post("/api/apprenants", json=student_payload())
        assert response.status_code == 401

    async def test_create_missing_cin(self, client: AsyncClient, staff_token: str):
        payload = student_payload()
        del payload["cin"]
        response = await client.post(
            "/api/apprenants", json=payload, headers=auth_header(staff_token)
        )
        assert response.status_code == 422

    async def test_duplicate_email(self, client: AsyncClient, staff_token: str, student: Student):
        response = await client.post(
            "/api/apprenants",
            json=student_payload(email=student.email),
            headers=auth_header(staff_token),
        )
        assert response.status_code == 409
        assert "email" in response.json()["detail"]

    async def test_duplicate_cin(self, client: AsyncClient, staff_token: str, student: Student):
        response = await client.post(
            "/api/apprenants",
            json=student_payload(cin=student.cin),
            headers=auth_header(staff_token),
        )
        assert response.status_code == 409
        assert "CIN" in response.json()["detail"]


class TestGetStudent:
    """Tests for the student details view."""

    async def test_get_student_with_enrollments(
        self, client: AsyncClient, db: AsyncSession, student: Student, course: Course
    ):
        enrollment = Enrollment(
            student_id=student.id,
            course_id=course.id,
            registration_fee=500,
            status="En attente",
            total_paid=200,
            remaining_balance=300,
        )
        db.add(enrollment)
        await db.commit()
        db.add(Payment(enrollment_id=enrollment.id, amount=200, method="cash", module="Module 1"))
        await db.commit()

        response = await client.get(f"/api/apprenants/{student.id}")
        assert response.status_code == 200
        data = response.json()
        assert data["nom"] == "Rakoto"
        assert len(data["inscriptions"]) == 1
        inscription = data["inscriptions"][0]
        assert inscription["nomFormation"] == "Python Fundamentals"
        assert inscription["montantRestant"] == 300
        assert [p["montant"] for p in inscription["paiements"]] == [200]

    async def test_get_student_not_found(self, client: AsyncClient, setup_database):
        response = await client.get("/api/apprenants/999")
        assert response.status_code == 404
        assert response.json()["detail"] == "Student not found"


class TestUpdateStudent:
    """Tests for updating students."""

    async def test_update_student(self, client: AsyncClient, staff_token: str, student: Student):
        response = await client.put(
            f"/api/apprenants/{student.id}",
            json={"adresse": "Antsirabe", "dateNaissance": "2001-01-01"},
            headers=auth_header(staff_token),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["adresse"] == "Antsirabe"
        assert data["dateNaissance"] == "2001-01-01"
        assert data["nom"] == "Rakoto"

    async def test_update_to_taken_email(
        self, client: AsyncClient, db: AsyncSession, staff_token: str, student: Student
    ):
        other = Student(last_name="B", first_name="A", email="other@example.com", cin="999999999")
        db.add(other)
        await db.commit()

        response = await client.put(
            f"/api/apprenants/{other.id}",
            json={"email": student.email},
            headers=auth_header(staff_token),
        )
        assert response.status_code == 409

    async def test_keep_own_email(self, client: AsyncClient, staff_token: str, student: Student):
        response = await client.put(
            f"/api/apprenants/{student.id}",
            json={"email": student.email, "prenom": "Jeanne"},
            headers=auth_header(staff_token),
        )
        assert response.status_code == 200
        assert response.json()["prenom"] == "Jeanne"

    async def test_update_not_found(self, client: AsyncClient, staff_token: str, setup_database):
        response = await client.put(
            "/api/apprenants/999", json={"nom": "X"}, headers=auth_header(staff_token)
        )
        assert response.status_code == 404


class TestDeleteStudent:
    """Tests for deleting students."""

    async def test_delete_cascades(
        self,
        client: AsyncClient,
        db: AsyncSession,
        admin_token: str,
        student: Student,
        course: Course,
    ):
        enrollment = Enrollment(
            student_id=student.id,
            course_id=course.id,
            registration_fee=500,
            status="En attente",
            total_paid=100,
            remaining_balance=400,
            enrolled_at=date.today(),
        )
        db.add(enrollment)
        await db.commit()
        db.add(Payment(enrollment_id=enrollment.id, amount=100, method="cash", module="M1"))
        await db.commit()

        response = await client.delete(
            f"/api/apprenants/{student.id}", headers=auth_header(admin_token)
        )
        assert response.status_code == 204

        assert (await client.get(f"/api/apprenants/{student.id}")).status_code == 404
        enrollments = await db.execute(select(func.count()).select_from(Enrollment))
        payments = await db.execute(select(func.count()).select_from(Payment))
        assert enrollments.scalar() == 0
        assert payments.scalar() == 0

    async def test_staff_cannot_delete(
        self, client: AsyncClient, staff_token: str, student: Student
    ):
        response = await client.delete(
            f"/api/apprenants/{student.id}", headers=auth_header(staff_token)
        )
        assert response.status_code == 403
