from edutrack.models import UserRole


def test_teacher_creates_class_once_per_grade_and_subject(client, make_user, auth_headers):
    teacher = make_user(UserRole.TEACHER)
    headers = auth_headers(teacher)
    payload = {"name": "Biology 10", "subject": "Biology", "grade": "10th"}

    resp = client.post("/api/teacher/classes", json=payload, headers=headers)
    assert resp.status_code == 201
    assert resp.json()["description"] == "Biology class for 10th students"
    assert resp.json()["teacher"]["id"] == teacher.id

    again = client.post("/api/teacher/classes", json=payload, headers=headers)
    assert again.status_code == 400

    listed = client.get("/api/teacher/classes", headers=headers).json()
    assert [c["name"] for c in listed] == ["Biology 10"]


def test_teacher_stats(client, make_user, make_class, auth_headers):
    teacher = make_user(UserRole.TEACHER)
    students = [make_user(), make_user()]
    make_class(teacher, students, name="Physics", subject="Physics")
    make_class(teacher, students[:1], name="Maths", subject="Maths")

    stats = client.get("/api/teacher/stats", headers=auth_headers(teacher)).json()
    assert stats["totalClasses"] == 2
    assert stats["totalStudents"] == 2
    assert stats["thisMonth"]["totalClasses"] == 0
    assert stats["recentAttendance"] == []


def test_marking_sheet_requires_class(client, make_user, make_class, auth_headers):
    teacher = make_user(UserRole.TEACHER)
    assert client.get("/api/teacher/attendance/students", headers=auth_headers(teacher)).status_code == 400

    classroom = make_class(make_user(UserRole.TEACHER))
    resp = client.get(
        "/api/teacher/attendance/students", params={"classId": classroom.id}, headers=auth_headers(teacher)
    )
    assert resp.status_code == 403
