from uuid import uuid4

import pytest

from kanasu.core.database import SessionLocal
from kanasu.core.exceptions import NotFoundError
from kanasu.models import Anganwadi, CsvImport, Gender, ImportStatus, Student, StudentStatus
from kanasu.services import csv_import

HEADER = "name,gender,status,anganwadiName,location,district,state\n"


def _write(tmp_path, body):
    path = tmp_path / "students.csv"
    path.write_text(HEADER + body, encoding="utf-8")
    return str(path)


def _run(db, path, anganwadi_id=None):
    record = csv_import.start_import(db, "students.csv", imported_by="admin", anganwadi_id=anganwadi_id)
    csv_import.process_student_csv(path, record.id, anganwadi_id, session_factory=SessionLocal)
    db.expire_all()
    return db.query(CsvImport).filter(CsvImport.id == record.id).one()


def test_rows_are_imported_and_anganwadis_matched_by_name(db, tmp_path, make_anganwadi):
    existing = make_anganwadi("Hosahalli")
    path = _write(
        tmp_path,
        "Asha,female,,hosahalli,,,\n"
        "Ravi,MALE,inactive,Kalligere,Temple street,Mandya,Karnataka\n"
        "\n"
        "Meena,F,,,,,\n"
        ",MALE,,,,,\n",
    )

    record = _run(db, path)

    assert record.status == ImportStatus.COMPLETED
    assert (record.total_rows, record.success_rows, record.failed_rows) == (4, 2, 2)
    assert "Row 3: Invalid gender 'F'" in record.error_log
    assert "Row 4: Missing required fields" in record.error_log

    asha = db.query(Student).filter(Student.name == "Asha").one()
    assert asha.anganwadi_id == existing.id
    assert asha.gender == Gender.FEMALE
    assert asha.status == StudentStatus.ACTIVE

    ravi = db.query(Student).filter(Student.name == "Ravi").one()
    assert ravi.status == StudentStatus.INACTIVE
    created = db.query(Anganwadi).filter(Anganwadi.id == ravi.anganwadi_id).one()
    assert (created.name, created.district) == ("Kalligere", "Mandya")


def test_rows_without_anganwadi_use_the_fallback(db, tmp_path, make_anganwadi):
    fallback = make_anganwadi("Fallback")
    record = _run(db, _write(tmp_path, "Asha,FEMALE,ACTIVE,,,,\n"), anganwadi_id=fallback.id)

    assert record.success_rows == 1
    assert db.query(Student).one().anganwadi_id == fallback.id


def test_uploaded_file_is_removed(db, tmp_path):
    path = _write(tmp_path, "Asha,FEMALE,,,,,\n")
    _run(db, path)
    assert not (tmp_path / "students.csv").exists()


def test_unreadable_file_marks_import_failed(db, tmp_path):
    record = csv_import.start_import(db, "missing.csv", imported_by="admin")

    with pytest.raises(OSError):
        csv_import.process_student_csv(str(tmp_path / "missing.csv"), record.id, session_factory=SessionLocal)

    db.expire_all()
    failed = db.query(CsvImport).filter(CsvImport.id == record.id).one()
    assert failed.status == ImportStatus.FAILED
    assert failed.error_log.startswith("Processing error:")


def test_unknown_fallback_anganwadi_is_rejected(db):
    with pytest.raises(NotFoundError):
        csv_import.start_import(db, "students.csv", imported_by="admin", anganwadi_id=uuid4())
