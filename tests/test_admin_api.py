import pytest
from sqlalchemy import select

from edutrack.models import Classroom, RequestStatus, User, UserRequest, UserRole


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, name="Head")


@pytest.fixture
def pending_request(session, make_user):
    def _make(name="Newcomer", role=UserRole.STUDENT):
        user = make_user(role, approved=False, name=name)
        request = UserRequest(user_id=user.id, email=user.email, name=user.name, requested_role=role)
        session.add(request)
        session.commit()
        return user, request

    return _make


def test_approve_sets_role_and_notifies(client, session, admin, pending_request, notifier, auth_headers):
    user, request = pending_request()

    resp = client.post(
        "/api/admin/approve-user",
        json={"requestId": request.id, "role": "teacher", "adminNotes": "welcome"},
        headers=auth_headers(admin),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["user"]["role"] == "teacher"
    assert body["user"]["isApproved"] is True
    assert body["userRequest"]["status"] == "approved"
    assert body["userRequest"]["processedBy"]["id"] == admin.id
    assert notifier.approved == [user.email]

    again = client.post(
        "/api/admin/approve-user",
        json={"requestId": request.id, "role": "student"},
        headers=auth_headers(admin),
    )
    assert again.status_code == 409
    assert again.json()["error"]["kind"] == "conflict"
    session.expire_all()
    assert session.get(User, user.id).role == UserRole.TEACHER


def test_approve_rejects_admin_role(client, admin, pending_request, auth_headers):
    _, request = pending_request()
    resp = client.post(
        "/api/admin/approve-user",
        json={"requestId": request.id, "role": "admin"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 400


def test_approve_unknown_request(client, admin, auth_headers):
    resp = client.post(
        "/api/admin/approve-user", json={"requestId": 404, "role": "student"}, headers=auth_headers(admin)
    )
    assert resp.status_code == 404


def test_reject_keeps_user_unapproved(client, session, admin, pending_request, notifier, auth_headers):
    user, request = pending_request()
    resp = client.post(
        "/api/admin/reject-user",
        json={"requestId": request.id, "adminNotes": "incomplete profile"},
        headers=auth_headers(admin),
    )

    assert resp.status_code == 200
    assert resp.json()["userRequest"]["status"] == "rejected"
    assert resp.json()["userRequest"]["adminNotes"] == "incomplete profile"
    assert resp.json()["user"]["isApproved"] is False
    assert notifier.approved == []


def test_request_listing_and_stats(client, admin, pending_request, auth_headers):
    _, first = pending_request("One")
    pending_request("Two")
    client.post("/api/admin/reject-user", json={"requestId": first.id}, headers=auth_headers(admin))

    everything = client.get("/api/admin/requests", headers=auth_headers(admin)).json()
    assert everything["stats"] == {"pending": 1, "approved": 0, "rejected": 1, "blocked": 0}
    assert len(everything["requests"]) == 2

    pending = client.get("/api/admin/requests", params={"status": "pending"}, headers=auth_headers(admin)).json()
    assert [r["user"]["name"] for r in pending["requests"]] == ["Two"]

    bad = client.get("/api/admin/requests", params={"status": "lost"}, headers=auth_headers(admin))
    assert bad.status_code == 400


def test_block_closes_pending_request_and_unblock(client, session, admin, pending_request, auth_headers, verifier):
    user, request = pending_request()

    resp = client.post(f"/api/admin/users/{user.id}/block", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert resp.json()["isBlocked"] is True
    session.expire_all()
    assert session.get(UserRequest, request.id).status == RequestStatus.BLOCKED

    token = verifier.issue(user.external_id, user.email, user.name)
    login = client.post("/api/auth/login", json={}, headers={"Authorization": f"Bearer {token}"})
    assert login.status_code == 403
    assert login.json()["error"]["kind"] == "blocked"

    resp = client.post(f"/api/admin/users/{user.id}/unblock", headers=auth_headers(admin))
    assert resp.json()["isBlocked"] is False

    assert client.post("/api/admin/users/9999/block", headers=auth_headers(admin)).status_code == 404


def test_admin_routes_refuse_other_roles(client, make_user, auth_headers):
    teacher = make_user(UserRole.TEACHER)
    resp = client.get("/api/admin/dashboard-stats", headers=auth_headers(teacher))
    assert resp.status_code == 403
    assert resp.json()["error"]["kind"] == "insufficient_role"


def test_dashboard_stats(client, admin, make_user, make_class, pending_request, auth_headers):
    teacher = make_user(UserRole.TEACHER)
    make_class(teacher, [make_user(), make_user()])
    pending_request()

    stats = client.get("/api/admin/dashboard-stats", headers=auth_headers(admin)).json()
    assert stats == {
        "totalStudents": 2,
        "totalTeachers": 1,
        "totalAdmins": 1,
        "pendingRequests": 1,
        "totalClasses": 1,
    }

    users = client.get("/api/admin/users", params={"role": "teacher"}, headers=auth_headers(admin)).json()
    assert [u["id"] for u in users] == [teacher.id]


def test_class_lifecycle(client, session, admin, make_user, auth_headers):
    teacher = make_user(UserRole.TEACHER, name="Meera")
    student = make_user(name="Asha")
    headers = auth_headers(admin)

    resp = client.post(
        "/api/admin/classes",
        json={"name": "Chemistry 12B", "subject": "Chemistry", "teacherId": teacher.id, "studentIds": [student.id]},
        headers=headers,
    )
    assert resp.status_code == 201
    created = resp.json()
    assert created["teacher"]["id"] == teacher.id
    assert created["studentCount"] == 1

    resp = client.put(
        f"/api/admin/classes/{created['id']}", json={"maxStudents": 40, "grade": "12th"}, headers=headers
    )
    assert resp.status_code == 200
    assert resp.json()["maxStudents"] == 40

    # ownership is not an editable field
    resp = client.put(
        f"/api/admin/classes/{created['id']}", json={"teacherId": admin.id}, headers=headers
    )
    assert resp.status_code == 400

    other = make_user(UserRole.TEACHER, name="Vikram")
    resp = client.post(
        f"/api/admin/classes/{created['id']}/assign-teacher", json={"teacherId": other.id}, headers=headers
    )
    assert resp.json()["teacher"]["id"] == other.id

    assert client.delete(f"/api/admin/classes/{created['id']}", headers=headers).status_code == 200
    assert session.scalar(select(Classroom)) is None


def test_assign_unapproved_teacher_is_rejected(client, admin, make_user, make_class, auth_headers):
    teacher = make_user(UserRole.TEACHER)
    classroom = make_class(teacher)
    newcomer = make_user(UserRole.TEACHER, approved=False)

    resp = client.post(
        f"/api/admin/classes/{classroom.id}/assign-teacher",
        json={"teacherId": newcomer.id},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 400
    assert "teacherId" in resp.json()["error"]["details"]["fields"]


def test_class_rejects_non_student_members(client, admin, make_user, auth_headers):
    teacher = make_user(UserRole.TEACHER)
    resp = client.post(
        "/api/admin/classes",
        json={"name": "Maths", "subject": "Maths", "teacherId": teacher.id, "studentIds": [teacher.id]},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 400


def test_attendance_report_for_admin(client, admin, make_user, make_class, auth_headers):
    teacher = make_user(UserRole.TEACHER)
    s1, s2 = make_user(), make_user()
    classroom = make_class(teacher, [s1, s2])
    client.post(
        "/api/attendance",
        json={
            "classId": classroom.id,
            "date": "2024-03-04",
            "students": [{"student": s1.id, "status": "present"}, {"student": s2.id, "status": "present"}],
        },
        headers=auth_headers(teacher),
    )

    report = client.get(
        "/api/admin/attendance-reports", params={"studentId": s2.id}, headers=auth_headers(admin)
    ).json()
    assert len(report["attendance"]) == 1
    assert report["overallStats"] == {"totalDays": 1, "totalSessions": 1, "averageAttendance": 100}


def test_unblocked_applicant_can_still_be_approved(client, session, admin, verifier, notifier, auth_headers):
    token = verifier.issue("subject-late", "late@school.test", "Late Joiner")
    applicant = {"Authorization": f"Bearer {token}"}
    assert client.post("/api/auth/login", json={}, headers=applicant).status_code == 201
    user = session.scalar(select(User).where(User.external_id == "subject-late"))

    client.post(f"/api/admin/users/{user.id}/block", headers=auth_headers(admin))
    client.post(f"/api/admin/users/{user.id}/unblock", headers=auth_headers(admin))

    login = client.post("/api/auth/login", json={}, headers=applicant)
    assert login.status_code == 403
    assert login.json()["error"]["kind"] == "pending_approval"

    pending = client.get("/api/admin/requests", params={"status": "pending"}, headers=auth_headers(admin)).json()
    assert [r["user"]["id"] for r in pending["requests"]] == [user.id]
    assert pending["stats"]["blocked"] == 1

    resp = client.post(
        "/api/admin/approve-user",
        json={"requestId": pending["requests"][0]["id"], "role": "student"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 200
    assert notifier.approved == ["late@school.test"]
    assert client.post("/api/auth/login", json={}, headers=applicant).status_code == 200
