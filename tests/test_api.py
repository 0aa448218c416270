"""
HTTP-level flows through the FastAPI app.
"""
import csv
import io
from datetime import datetime, timedelta

from kanasu.models import ImportStatus

API = "/api/v1"


def _iso(value):
    return value.isoformat()


def _setup_school(client):
    anganwadi = client.post(f"{API}/anganwadis/", json={
        "name": "Hosahalli", "location": "Main road", "district": "Mysuru",
    }).json()["data"]
    students = [
        client.post(f"{API}/students/", json={
            "name": name, "gender": "FEMALE", "anganwadi_id": anganwadi["id"],
        }).json()["data"]
        for name in ("Asha", "Meena")
    ]
    teacher = client.post(f"{API}/teachers/", json={
        "name": "Lakshmi", "phone": "9845011111", "anganwadi_id": anganwadi["id"],
    }).json()["data"]
    topic = client.post(f"{API}/topics/", json={"name": "Fruits"}).json()["data"]
    questions = client.post(f"{API}/questions/batch", json={"questions": [
        {"topic_id": topic["id"], "text": "What is this?",
         "answer_options": ["the red apple", "a blue car"], "correct_answers": [0]},
    ]}).json()["data"]
    return anganwadi, students, teacher, topic, questions


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_register_login_and_dashboard(client):
    body = {"email": "coord@kanasu.org", "password": "secret123", "name": "Coord", "role": "REGIONAL_COORDINATOR"}
    assert client.post(f"{API}/auth/register", json=body).status_code == 201

    duplicate = client.post(f"{API}/auth/register", json=body)
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "Email already registered"

    bad = client.post(f"{API}/auth/login", json={"email": body["email"], "password": "wrong"})
    assert bad.status_code == 401

    login = client.post(f"{API}/auth/login", json={"email": body["email"], "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    dashboard = client.get(f"{API}/auth/dashboard", headers=headers)
    assert dashboard.status_code == 200
    assert dashboard.json()["message"] == "Welcome to the Dashboard"
    assert dashboard.json()["user"]["role"] == "REGIONAL_COORDINATOR"

    me = client.get(f"{API}/users/me", headers=headers)
    assert me.json()["data"]["email"] == body["email"]


def test_dashboard_rejects_missing_and_bad_tokens(client, make_anganwadi, make_teacher, teacher_headers):
    assert client.get(f"{API}/auth/dashboard").status_code == 401
    assert client.get(f"{API}/auth/dashboard", headers={"Authorization": "Bearer nope"}).status_code == 401

    teacher = make_teacher(make_anganwadi())
    assert client.get(f"{API}/auth/dashboard", headers=teacher_headers(teacher)).status_code == 403


def test_anganwadi_rejects_unknown_members(client):
    response = client.post(f"{API}/anganwadis/", json={
        "name": "Hosahalli", "location": "Main road", "district": "Mysuru",
        "teacher_ids": ["00000000-0000-0000-0000-000000000001"],
    })
    assert response.status_code == 400


def test_duplicate_teacher_phone(client, make_anganwadi):
    anganwadi = make_anganwadi()
    payload = {"name": "Lakshmi", "phone": "9845022222", "anganwadi_id": str(anganwadi.id)}
    assert client.post(f"{API}/teachers/", json=payload).status_code == 201
    assert client.post(f"{API}/teachers/", json=payload).status_code == 400


def test_assessment_session_flow(client):
    anganwadi, students, teacher, topic, questions = _setup_school(client)
    now = datetime.utcnow()

    created = client.post(f"{API}/assessment-sessions/", json={
        "name": "Week 1",
        "start_date": _iso(now - timedelta(days=1)),
        "end_date": _iso(now + timedelta(days=6)),
        "topic_ids": [topic["id"]],
        "anganwadi_ids": [anganwadi["id"]],
    })
    assert created.status_code == 201
    session = created.json()["data"]
    assert session["status"] == "DRAFT"
    assert session["stats"]["total_students"] == 2
    session_id = session["id"]

    assert client.patch(f"{API}/assessment-sessions/{session_id}/publish").status_code == 200
    assert client.patch(f"{API}/assessment-sessions/{session_id}/publish").status_code == 400

    active = client.get(f"{API}/assessment-sessions/active-for-anganwadi", params={"anganwadi_id": anganwadi["id"]})
    assert [s["id"] for s in active.json()["data"]] == [session_id]

    grouped = client.get(f"{API}/questions/session/{session_id}").json()
    assert grouped["total_questions"] == 1

    submission = {
        "teacher_id": teacher["id"],
        "anganwadi_id": anganwadi["id"],
        "responses": [{
            "question_id": questions[0]["id"],
            "start_time": _iso(now),
            "end_time": _iso(now + timedelta(seconds=20)),
            "audio_url": "https://cdn.example.org/a.mp3",
        }],
    }
    url = f"{API}/assessment-sessions/{session_id}/student/{students[0]['id']}"
    first = client.post(url, json=submission)
    assert first.status_code == 201
    response_id = first.json()["data"]["responses"][0]["id"]

    again = client.post(url, json=submission)
    assert again.status_code == 400
    assert again.json()["detail"] == "Student has already submitted this assessment"

    progress = client.get(f"{API}/assessment-sessions/{session_id}/anganwadi/{anganwadi['id']}").json()["data"]
    assert progress["anganwadi_assessment"]["completed_student_count"] == 1
    assert progress["anganwadi_assessment"]["is_complete"] is False
    assert [s["name"] for s in progress["pending_students"]] == ["Meena"]

    assert client.post(f"{API}/student-responses/{response_id}/score", json={"score": 11}).status_code == 400
    assert client.post(f"{API}/student-responses/{response_id}/score", json={"score": 8}).status_code == 201

    auto = client.post(f"{API}/student-responses/{response_id}/auto-score", json={"transcription": "a red apple"})
    assert auto.status_code == 201
    assert auto.json()["data"]["score"] == 5

    detail = client.get(f"{API}/student-responses/{response_id}").json()["data"]
    assert len(detail["scores"]) == 2
    assert detail["latest_score"]["is_auto_scored"] is True

    export = client.get(f"{API}/student-responses/export", params={"teacher_id": teacher["id"]})
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    rows = list(csv.reader(io.StringIO(export.text)))
    assert rows[0][:3] == ["ID", "Student Name", "Question"]
    assert rows[1][1] == "Asha"
    assert rows[1][5] == "5"

    assert client.delete(f"{API}/assessment-sessions/{session_id}").status_code == 400

    completed = client.patch(f"{API}/assessment-sessions/{session_id}/complete")
    assert completed.status_code == 200
    assert completed.json()["data"]["stats"]["completed_anganwadis"] == 1

    assert client.delete(f"{API}/anganwadis/{anganwadi['id']}").status_code == 400


def test_session_requires_participants(client):
    topic = client.post(f"{API}/topics/", json={"name": "Fruits"}).json()["data"]
    now = datetime.utcnow()
    response = client.post(f"{API}/assessment-sessions/", json={
        "name": "Empty", "start_date": _iso(now), "end_date": _iso(now + timedelta(days=1)),
        "topic_ids": [topic["id"]],
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "No anganwadis found for this assessment"


def test_malformed_session_bodies_are_400(client):
    topic = client.post(f"{API}/topics/", json={"name": "Fruits"}).json()["data"]
    anganwadi = client.post(f"{API}/anganwadis/", json={
        "name": "Hosahalli", "location": "Main road", "district": "Mysuru",
    }).json()["data"]
    now = datetime.utcnow()

    empty_topics = client.post(f"{API}/assessment-sessions/", json={
        "name": "Week 1", "start_date": _iso(now), "end_date": _iso(now + timedelta(days=1)),
        "topic_ids": [], "anganwadi_ids": [anganwadi["id"]],
    })
    assert empty_topics.status_code == 400
    assert "topic_ids" in empty_topics.json()["detail"]

    missing_dates = client.post(f"{API}/assessment-sessions/", json={
        "name": "Week 1", "topic_ids": [topic["id"]], "anganwadi_ids": [anganwadi["id"]],
    })
    assert missing_dates.status_code == 400
    assert "start_date" in missing_dates.json()["detail"]


def test_malformed_score_and_batch_bodies_are_400(client):
    response_id = "00000000-0000-0000-0000-000000000001"
    assert client.post(f"{API}/student-responses/{response_id}/score", json={"score": "ten"}).status_code == 400
    assert client.post(f"{API}/student-responses/batch", json={"responses": []}).status_code == 400


def test_cohort_rankings_endpoints(client, make_cohort, make_anganwadi, make_teacher):
    cohort = make_cohort()
    make_teacher(make_anganwadi(), cohort)

    updated = client.post(f"{API}/cohorts/{cohort.id}/rankings")
    assert updated.status_code == 200
    assert updated.json()["data"][0]["rank"] == 0

    assert client.get(f"{API}/cohorts/00000000-0000-0000-0000-000000000000/rankings").status_code == 404
    assert client.delete(f"{API}/cohorts/{cohort.id}").status_code == 200


def test_question_upload_requires_files(client, make_topic):
    topic = make_topic()
    response = client.post(f"{API}/questions/", data={"topic_id": str(topic.id), "text": "What is this?"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Image and audio files are required."


def test_evaluation_requires_media(client, make_anganwadi, make_student, make_teacher, make_topic):
    anganwadi = make_anganwadi()
    response = client.post(f"{API}/evaluations/", data={
        "teacher_id": str(make_teacher(anganwadi).id),
        "student_id": str(make_student(anganwadi).id),
        "topic_id": str(make_topic().id),
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Audio or metadata file missing."


def test_csv_import_requires_admin(client, make_anganwadi, make_teacher, teacher_headers):
    files = {"file": ("students.csv", b"name,gender\nAsha,FEMALE\n", "text/csv")}
    assert client.post(f"{API}/csv-import/students", files=files).status_code == 401

    teacher = make_teacher(make_anganwadi())
    response = client.post(f"{API}/csv-import/students", files=files, headers=teacher_headers(teacher))
    assert response.status_code == 403


def test_csv_import_runs_in_background(client, admin_headers):
    files = {"file": ("students.csv", b"name,gender,anganwadiName\nAsha,FEMALE,Hosahalli\nRavi,X,\n", "text/csv")}
    queued = client.post(f"{API}/csv-import/students", files=files, headers=admin_headers)
    assert queued.status_code == 202
    import_id = queued.json()["data"]["import_id"]

    status = client.get(f"{API}/csv-import/{import_id}", headers=admin_headers).json()["data"]
    assert status["status"] == ImportStatus.COMPLETED.value
    assert (status["total_rows"], status["success_rows"], status["failed_rows"]) == (2, 1, 1)

    listing = client.get(f"{API}/csv-import/", headers=admin_headers).json()
    assert listing["pagination"]["total_count"] == 1


def test_csv_import_rejects_other_files(client, admin_headers):
    files = {"file": ("students.txt", b"hello", "text/plain")}
    response = client.post(f"{API}/csv-import/students", files=files, headers=admin_headers)
    assert response.status_code == 400
