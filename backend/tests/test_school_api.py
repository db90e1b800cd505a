from conftest import auth_headers, make_course, make_term, make_user, place_slot

from app.models.user import UserRole


def test_semester_flow(client, db_session):
    admin = make_user(db_session, "Admin", UserRole.admin)
    headers = auth_headers(admin)

    odd = client.post(
        "/api/semesters",
        json={"academic_year_name": "2026/2027", "type": "odd", "start_date": "2026-07-13", "end_date": "2026-12-18"},
        headers=headers,
    )
    even = client.post(
        "/api/semesters",
        json={"academic_year_name": "2026/2027", "type": "even", "start_date": "2027-01-11", "end_date": "2027-06-18"},
        headers=headers,
    )
    assert odd.status_code == 201
    assert even.status_code == 201
    assert odd.json()["academic_year_name"] == "2026/2027"

    assert client.get("/api/semesters/active", headers=headers).json() is None

    activated = client.post(f"/api/semesters/{even.json()['id']}/activate", headers=headers)
    assert activated.status_code == 200
    assert activated.json()["is_active"] is True
    assert client.get("/api/semesters/active", headers=headers).json()["id"] == even.json()["id"]

    years = client.get("/api/academic-years", headers=headers).json()
    assert [(year["name"], year["is_active"]) for year in years] == [("2026/2027", True)]

    bad = client.post(
        "/api/semesters",
        json={"academic_year_name": "2027/2028", "type": "odd", "start_date": "2027-12-01", "end_date": "2027-07-01"},
        headers=headers,
    )
    assert bad.status_code == 400
    assert bad.json()["kind"] == "validation"

    deleted = client.delete(f"/api/semesters/{even.json()['id']}", headers=headers)
    assert deleted.json() == {"success": True, "message": "Semester deleted"}
    assert client.get("/api/semesters/active", headers=headers).json() is None
    assert [item["id"] for item in client.get("/api/semesters", headers=headers).json()] == [odd.json()["id"]]


def test_non_admin_cannot_manage_calendar(client, db_session):
    teacher = make_user(db_session, "Teacher", UserRole.teacher)

    response = client.post(
        "/api/academic-years",
        json={"name": "2026/2027", "start_date": "2026-07-01", "end_date": "2027-06-30"},
        headers=auth_headers(teacher),
    )

    assert response.status_code == 403


def test_course_crud(client, db_session):
    term = make_term(db_session)
    admin = make_user(db_session, "Admin", UserRole.admin)
    teacher = make_user(db_session, "Teacher", UserRole.teacher)
    student = make_user(db_session, "Sari", UserRole.student)
    headers = auth_headers(admin)

    not_a_teacher = client.post(
        "/api/courses/",
        json={"name": "Math", "teacher_id": student.id, "term_id": term.id},
        headers=headers,
    )
    assert not_a_teacher.status_code == 400

    created = client.post(
        "/api/courses/",
        json={"name": " Math ", "report_name": "Mathematics", "teacher_id": teacher.id, "term_id": term.id},
        headers=headers,
    )
    assert created.status_code == 201
    course = created.json()
    assert course["name"] == "Math"
    assert course["student_count"] == 0

    listed = client.get("/api/courses/", headers=auth_headers(student)).json()
    assert [item["id"] for item in listed] == [course["id"]]

    moved = client.put(f"/api/courses/{course['id']}", json={"term_id": "another-term"}, headers=headers)
    assert moved.status_code == 400

    renamed = client.put(f"/api/courses/{course['id']}", json={"name": "Algebra"}, headers=headers)
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Algebra"

    assert client.delete(f"/api/courses/{course['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/courses/{course['id']}", headers=headers).status_code == 404
    assert client.get("/api/courses/", headers=headers).json() == []


def test_course_list_scoped_to_active_term(client, db_session):
    from app.models.academic_calendar import SemesterType

    active = make_term(db_session)
    old = make_term(db_session, semester_type=SemesterType.even, is_active=False)
    admin = make_user(db_session, "Admin", UserRole.admin)
    teacher = make_user(db_session, "Teacher", UserRole.teacher)
    current = make_course(db_session, "Current", teacher, active)
    past = make_course(db_session, "Past", teacher, old)

    default = client.get("/api/courses/", headers=auth_headers(admin)).json()
    everything = client.get("/api/courses/", params={"show_all": True}, headers=auth_headers(admin)).json()

    assert [item["id"] for item in default] == [current.id]
    assert {item["id"] for item in everything} == {current.id, past.id}


def test_archiving_course_frees_its_slots(client, db_session):
    term = make_term(db_session)
    admin = make_user(db_session, "Admin", UserRole.admin)
    teacher = make_user(db_session, "Teacher", UserRole.teacher)
    math = make_course(db_session, "Math", teacher, term)
    art = make_course(db_session, "Art", teacher, term)
    place_slot(db_session, math, 1, 1)
    headers = auth_headers(admin)

    assert client.delete(f"/api/courses/{math.id}", headers=headers).status_code == 200

    response = client.put(
        f"/api/schedule/teachers/{teacher.id}/slots",
        json={"day_of_week": 1, "period": 1, "course_id": art.id},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["slot"]["course_id"] == art.id


def test_changing_course_teacher_respects_double_booking(client, db_session):
    term = make_term(db_session)
    admin = make_user(db_session, "Admin", UserRole.admin)
    ayu = make_user(db_session, "Ayu", UserRole.teacher)
    budi = make_user(db_session, "Budi", UserRole.teacher)
    math = make_course(db_session, "Math", ayu, term)
    art = make_course(db_session, "Art", budi, term)
    place_slot(db_session, math, 1, 1)
    place_slot(db_session, art, 1, 1)

    response = client.put(f"/api/courses/{math.id}", json={"teacher_id": budi.id}, headers=auth_headers(admin))

    assert response.status_code == 409
    assert response.json()["kind"] == "conflict"


def test_course_enrollment_endpoints(client, db_session):
    term = make_term(db_session)
    admin = make_user(db_session, "Admin", UserRole.admin)
    teacher = make_user(db_session, "Teacher", UserRole.teacher)
    sari = make_user(db_session, "Sari", UserRole.student)
    math = make_course(db_session, "Math", teacher, term)
    headers = auth_headers(admin)

    available = client.get(f"/api/courses/{math.id}/available-students", params={"search": "sar"}, headers=headers)
    assert [item["id"] for item in available.json()] == [sari.id]

    enrolled = client.post(f"/api/courses/{math.id}/students", json={"student_id": sari.id}, headers=headers)
    assert enrolled.status_code == 201
    duplicate = client.post(f"/api/courses/{math.id}/students", json={"student_id": sari.id}, headers=headers)
    assert duplicate.status_code == 409

    students = client.get(f"/api/courses/{math.id}/students", headers=headers).json()
    assert [item["name"] for item in students] == ["Sari"]

    removed = client.delete(f"/api/courses/{math.id}/students/{sari.id}", headers=headers)
    assert removed.status_code == 200
    missing = client.delete(f"/api/courses/{math.id}/students/{sari.id}", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["kind"] == "not_found"


def test_class_flow_and_class_enrollment(client, db_session):
    term = make_term(db_session)
    admin = make_user(db_session, "Admin", UserRole.admin)
    homeroom = make_user(db_session, "Homeroom", UserRole.homeroom_teacher)
    sari = make_user(db_session, "Sari", UserRole.student)
    tono = make_user(db_session, "Tono", UserRole.student)
    math = make_course(db_session, "Math", homeroom, term)
    headers = auth_headers(admin)

    created = client.post(
        "/api/classes/",
        json={"name": "7A", "term_id": term.id, "homeroom_teacher_id": homeroom.id},
        headers=headers,
    )
    assert created.status_code == 201
    class_id = created.json()["id"]

    duplicate = client.post("/api/classes/", json={"name": "7a", "term_id": term.id}, headers=headers)
    assert duplicate.status_code == 409

    for student in (sari, tono):
        response = client.post(f"/api/classes/{class_id}/students", json={"student_id": student.id}, headers=headers)
        assert response.status_code == 201

    roster = client.get(f"/api/classes/{class_id}/students", headers=headers).json()
    assert [item["name"] for item in roster] == ["Sari", "Tono"]
    assert all(item["enrollment_id"] for item in roster)

    assert [item["student_count"] for item in client.get("/api/classes/", headers=headers).json()] == [2]

    enrolled = client.post(f"/api/courses/{math.id}/classes", json={"class_id": class_id}, headers=headers)
    assert enrolled.status_code == 200
    assert enrolled.json()["count"] == 2

    again = client.post(f"/api/courses/{math.id}/classes", json={"class_id": class_id}, headers=headers)
    assert again.json()["count"] == 0

    teachers = client.get("/api/classes/homeroom-teachers", headers=headers).json()
    assert [item["id"] for item in teachers] == [homeroom.id]

    assert client.delete(f"/api/classes/{class_id}", headers=headers).status_code == 200
    assert client.get(f"/api/classes/{class_id}/students", headers=headers).status_code == 404


def test_subjects_and_users(client, db_session):
    admin = make_user(db_session, "Admin", UserRole.admin)
    headers = auth_headers(admin)

    subject = client.post("/api/subjects/", json={"name": "Mathematics", "code": "mat"}, headers=headers)
    assert subject.status_code == 201
    assert subject.json()["code"] == "MAT"
    assert client.post("/api/subjects/", json={"name": "Maths", "code": "MAT"}, headers=headers).status_code == 409

    user = client.post(
        "/api/users/",
        json={"name": "Ayu", "email": "Ayu@School.edu", "role": "homeroom_teacher"},
        headers=headers,
    )
    assert user.status_code == 201
    assert user.json()["email"] == "ayu@school.edu"
    again = client.post(
        "/api/users/",
        json={"name": "Ayu Two", "email": "ayu@school.edu", "role": "teacher"},
        headers=headers,
    )
    assert again.status_code == 409
    assert again.json()["error"] == "Email already registered"

    teachers = client.get("/api/users/", params={"role": "homeroom_teacher"}, headers=headers).json()
    assert [item["name"] for item in teachers] == ["Ayu"]
    assert client.get("/api/users/me", headers=headers).json()["id"] == admin.id


def test_activity_log_records_writes(client, db_session):
    admin = make_user(db_session, "Admin", UserRole.admin)
    headers = auth_headers(admin)
    client.post("/api/subjects/", json={"name": "Art", "code": "ART"}, headers=headers)

    logs = client.get("/api/activity/logs", headers=headers).json()

    assert [(item["action"], item["actor_id"]) for item in logs] == [("subject.created", admin.id)]


def test_renaming_class_refreshes_teacher_grid(client, db_session):
    term = make_term(db_session)
    admin = make_user(db_session, "Admin", UserRole.admin)
    teacher = make_user(db_session, "Teacher", UserRole.teacher)
    headers = auth_headers(admin)
    class_id = client.post("/api/classes/", json={"name": "7A", "term_id": term.id}, headers=headers).json()["id"]
    course = client.post(
        "/api/courses/",
        json={"name": "Math", "teacher_id": teacher.id, "term_id": term.id, "class_id": class_id},
        headers=headers,
    ).json()
    client.put(
        f"/api/schedule/teachers/{teacher.id}/slots",
        json={"day_of_week": 1, "period": 1, "course_id": course["id"]},
        headers=headers,
    )

    before = client.get(f"/api/schedule/teachers/{teacher.id}", headers=headers).json()
    client.put(f"/api/classes/{class_id}", json={"name": "7B"}, headers=headers)
    after = client.get(f"/api/schedule/teachers/{teacher.id}", headers=headers).json()

    assert before["cells"][0]["class_name"] == "7A"
    assert after["cells"][0]["class_name"] == "7B"
