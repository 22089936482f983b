"""
Record CRUD endpoint tests: students, courses, enrollments, attendance,
health records and social assistance.
"""
from datetime import date

import pytest


class TestStudents:
    def test_create_and_list_ordered_by_name(self, client):
        for name, cpf in [("Bruno Alves", "222"), ("Ana Lima", "111")]:
            resp = client.post("/api/students", json={"full_name": name, "cpf": cpf, "age": 14})
            assert resp.status_code == 201

        names = [s["full_name"] for s in client.get("/api/students").json()]
        assert names == ["Ana Lima", "Bruno Alves"]

    def test_has_nis_defaults_to_false(self, client):
        body = client.post("/api/students", json={"full_name": "Ana", "cpf": "111"}).json()
        assert body["has_nis"] is False
        assert body["age"] is None

    def test_search_by_name_or_cpf(self, client, factory):
        factory.student("Ana Lima", cpf="123.456.789-00")
        factory.student("Bruno Alves", cpf="987.654.321-00")

        assert [s["full_name"] for s in client.get("/api/students", params={"search": "bruno"}).json()] == ["Bruno Alves"]
        assert [s["full_name"] for s in client.get("/api/students", params={"search": "123.456"}).json()] == ["Ana Lima"]

    def test_duplicate_cpf_is_rejected(self, client, factory):
        factory.student("Ana", cpf="111")
        resp = client.post("/api/students", json={"full_name": "Outra Ana", "cpf": "111"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Já existe um aluno com este CPF"

    def test_negative_age_is_invalid(self, client):
        resp = client.post("/api/students", json={"full_name": "Ana", "cpf": "111", "age": -1})
        assert resp.status_code == 422

    def test_update_keeps_omitted_fields(self, client, factory):
        student = factory.student("Ana", cpf="111", age=12, phone="9999")
        resp = client.put("/api/students/{}".format(student.id), json={"age": 13})

        assert resp.status_code == 200
        assert resp.json()["age"] == 13
        assert resp.json()["phone"] == "9999"

    def test_null_required_fields_are_left_unchanged(self, client, factory):
        student = factory.student("Ana", cpf="111", phone="9999")
        resp = client.put("/api/students/{}".format(student.id), json={
            "full_name": None, "cpf": None, "has_nis": None, "phone": None,
        })

        assert resp.status_code == 200
        body = resp.json()
        assert body["full_name"] == "Ana"
        assert body["cpf"] == "111"
        assert body["has_nis"] is False
        assert body["phone"] is None

    def test_search_treats_wildcards_literally(self, client, factory):
        factory.student("Ana_Lima")
        factory.student("AnaXLima")
        factory.student("Bruno 100%")

        assert [s["full_name"] for s in client.get("/api/students", params={"search": "a_l"}).json()] == ["Ana_Lima"]
        assert [s["full_name"] for s in client.get("/api/students", params={"search": "%"}).json()] == ["Bruno 100%"]

    def test_missing_student_is_404(self, client):
        resp = client.get("/api/students/does-not-exist")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Aluno não encontrado"

    def test_delete_with_linked_records_is_409(self, client, factory):
        student = factory.student()
        factory.social_record(student)
        resp = client.delete("/api/students/{}".format(student.id))
        assert resp.status_code == 409

    def test_delete(self, client, factory):
        student = factory.student()
        assert client.delete("/api/students/{}".format(student.id)).status_code == 200
        assert client.get("/api/students").json() == []


class TestCourses:
    def test_crud(self, client):
        created = client.post("/api/courses", json={
            "name": "Informática", "shift": "Manhã", "workload_hours": 60, "available_spots": 25,
        }).json()

        updated = client.put("/api/courses/{}".format(created["id"]), json={"available_spots": 30}).json()
        assert updated["available_spots"] == 30
        assert updated["workload_hours"] == 60

        assert client.delete("/api/courses/{}".format(created["id"])).status_code == 200
        assert client.get("/api/courses").json() == []

    def test_null_required_fields_are_left_unchanged(self, client, factory):
        course = factory.course("Costura", workload_hours=60, available_spots=25)
        resp = client.put("/api/courses/{}".format(course.id), json={
            "name": None, "workload_hours": None, "available_spots": None,
        })

        assert resp.status_code == 200
        assert resp.json()["name"] == "Costura"
        assert resp.json()["workload_hours"] == 60
        assert resp.json()["available_spots"] == 25

    def test_delete_with_enrollments_is_409(self, client, factory):
        course = factory.course()
        factory.enrollment(factory.student(), course)
        assert client.delete("/api/courses/{}".format(course.id)).status_code == 409


class TestEnrollments:
    def test_create_embeds_student_and_course(self, client, factory):
        student = factory.student("Ana")
        course = factory.course("Costura")
        resp = client.post("/api/enrollments", json={"student_id": student.id, "course_id": course.id})

        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "active"
        assert body["enrollment_date"] == date.today().isoformat()
        assert body["student"]["full_name"] == "Ana"
        assert body["course"]["name"] == "Costura"

    def test_missing_course_is_404(self, client, factory):
        student = factory.student()
        resp = client.post("/api/enrollments", json={"student_id": student.id, "course_id": "nope"})
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Curso não encontrado"

    def test_invalid_status_is_rejected(self, client, factory):
        student, course = factory.student(), factory.course()
        resp = client.post("/api/enrollments", json={
            "student_id": student.id, "course_id": course.id, "status": "paused",
        })
        assert resp.status_code == 422

    def test_filters(self, client, factory):
        course = factory.course()
        factory.enrollment(factory.student("Ana"), course, "active")
        factory.enrollment(factory.student("Bia"), course, "locked")

        locked = client.get("/api/enrollments", params={"status": "locked"}).json()
        assert [e["student"]["full_name"] for e in locked] == ["Bia"]
        assert len(client.get("/api/enrollments", params={"course_id": course.id}).json()) == 2

    def test_status_change(self, client, factory):
        enrollment = factory.enrollment(factory.student(), factory.course())
        resp = client.put("/api/enrollments/{}".format(enrollment.id), json={"status": "completed"})
        assert resp.json()["status"] == "completed"

    def test_delete_with_attendance_is_409(self, client, factory):
        enrollment = factory.enrollment(factory.student(), factory.course())
        factory.attendance(enrollment)
        assert client.delete("/api/enrollments/{}".format(enrollment.id)).status_code == 409


class TestAttendance:
    def test_record_and_list_most_recent_first(self, client, factory):
        enrollment = factory.enrollment(factory.student(), factory.course())
        for day, status in [("2024-03-04", "present"), ("2024-03-05", "absent")]:
            resp = client.post("/api/attendance", json={
                "enrollment_id": enrollment.id, "date": day, "status": status,
                "absence_reason": "Consulta médica",
            })
            assert resp.status_code == 201

        rows = client.get("/api/attendance", params={"enrollment_id": enrollment.id}).json()
        assert [r["date"] for r in rows] == ["2024-03-05", "2024-03-04"]
        assert rows[0]["absence_reason"] == "Consulta médica"
        assert rows[1]["absence_reason"] is None
        assert rows[0]["enrollment"]["course"]["name"] == "Informática"

    def test_date_range(self, client, factory):
        enrollment = factory.enrollment(factory.student(), factory.course())
        factory.attendance(enrollment, on=date(2024, 3, 4))
        factory.attendance(enrollment, on=date(2024, 4, 4))

        rows = client.get("/api/attendance", params={"date_from": "2024-04-01"}).json()
        assert [r["date"] for r in rows] == ["2024-04-04"]

    def test_null_status_is_left_unchanged(self, client, factory):
        enrollment = factory.enrollment(factory.student(), factory.course())
        record = factory.attendance(enrollment, "absent", absence_reason="Chuva")
        resp = client.put("/api/attendance/{}".format(record.id), json={
            "status": None, "absence_reason": "Consulta",
        })

        assert resp.status_code == 200
        assert resp.json()["status"] == "absent"
        assert resp.json()["absence_reason"] == "Consulta"

    def test_unknown_enrollment_is_404(self, client):
        resp = client.post("/api/attendance", json={
            "enrollment_id": "nope", "date": "2024-03-04", "status": "present",
        })
        assert resp.status_code == 404


class TestHealthRecords:
    def test_create_initialises_type_payload(self, client, factory):
        student = factory.student("Ana", age=11)
        resp = client.post("/api/health-records", json={
            "student_id": student.id,
            "record_type": "medical",
            "professional_name": "Dr. Paulo",
            "allergies": ["Dipirona"],
            "dental_history": "ignored for medical records",
        })

        assert resp.status_code == 201
        body = resp.json()
        assert body["allergies"] == ["Dipirona"]
        assert body["medications"] == []
        assert body["clinical_history"] == ""
        assert body["dental_history"] is None
        assert body["student_name"] == "Ana"
        assert body["student_age"] == 11
        assert body["date"] == date.today().isoformat()

    def test_missing_professional_is_invalid(self, client, factory):
        student = factory.student()
        resp = client.post("/api/health-records", json={"student_id": student.id, "record_type": "dental"})
        assert resp.status_code == 422

    def test_filter_and_search(self, client, factory):
        ana, bia = factory.student("Ana"), factory.student("Bia")
        factory.health_record(ana, "dental", "Dra. Ana Souza")
        factory.health_record(bia, "nutritional", "Dra. Rita", bmi=21.0)

        nutritional = client.get("/api/health-records", params={"record_type": "nutritional"}).json()
        assert [r["student_name"] for r in nutritional] == ["Bia"]
        by_professional = client.get("/api/health-records", params={"search": "rita"}).json()
        assert [r["bmi"] for r in by_professional] == [21.0]

    def test_search_treats_wildcards_literally(self, client, factory):
        student = factory.student("Ana")
        factory.health_record(student, "dental", "Dra. Ana Souza")
        assert client.get("/api/health-records", params={"search": "_"}).json() == []

    def test_update_only_touches_own_type(self, client, factory):
        record = factory.health_record(factory.student(), "dental", hygiene_habits="")
        resp = client.put("/api/health-records/{}".format(record.id), json={
            "hygiene_habits": "Escova 3x ao dia", "diagnosis": "not a dental field",
        })
        assert resp.json()["hygiene_habits"] == "Escova 3x ao dia"
        assert resp.json()["diagnosis"] is None

    def test_export_pdf(self, client, factory):
        factory.health_record(factory.student(), "dental")
        resp = client.get("/api/health-records/export.pdf", params={"record_type": "dental"})

        assert resp.status_code == 200
        assert resp.content.startswith(b"%PDF")
        expected = "relatorio_saude_dental_{}.pdf".format(date.today().isoformat())
        assert expected in resp.headers["content-disposition"]

    def test_export_without_records_is_404(self, client):
        resp = client.get("/api/health-records/export.pdf", params={"record_type": "medical"})
        assert resp.status_code == 404


class TestSocialAssistance:
    def test_needs_vocabulary(self, client):
        needs = client.get("/api/social-assistance/needs").json()
        assert "Moradia" in needs
        assert len(needs) == 8

    @pytest.mark.parametrize("needs", [[], ["  "]])
    def test_needs_are_required(self, client, factory, needs):
        student = factory.student()
        resp = client.post("/api/social-assistance", json={"student_id": student.id, "identified_needs": needs})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Por favor, selecione pelo menos uma necessidade identificada"

    def test_student_is_required(self, client):
        resp = client.post("/api/social-assistance", json={"identified_needs": ["Moradia"]})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Por favor, selecione um aluno"

    def test_create_and_filter_by_need(self, client, factory):
        ana, bia = factory.student("Ana"), factory.student("Bia")
        resp = client.post("/api/social-assistance", json={
            "student_id": ana.id, "identified_needs": ["Moradia", "Renda"], "referrals": ["CRAS"],
        })
        assert resp.status_code == 201
        assert resp.json()["referrals"] == ["CRAS"]
        factory.social_record(bia, ["Transporte"])

        rows = client.get("/api/social-assistance", params={"need": "Renda"}).json()
        assert [r["student_name"] for r in rows] == ["Ana"]

    def test_export_pdf(self, client, factory):
        factory.social_record(factory.student("Ana"), ["Alimentação"])
        resp = client.get("/api/social-assistance/export.pdf")
        assert resp.status_code == 200
        assert resp.content.startswith(b"%PDF")
