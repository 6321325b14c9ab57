import csv
import io
import logging
import zipfile
from typing import Any, Callable, Dict, List, Optional, Tuple

import pandas as pd
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from base.api_utils import first_form_error
from staff.forms import StaffCreateForm
from staff.models import Role, create_staff_account
from students.forms import ClassroomForm, StudentForm, SubjectForm
from students.models import Classroom

logger = logging.getLogger(__name__)

EMPTY_FILE_ERROR = "CSV file is empty or invalid format"
EMPTY_EXCEL_ERROR = "Excel file is empty or invalid format"


# ==================== READING ====================


def read_csv_upload(upload) -> Tuple[Optional[pd.DataFrame], Optional[str]]:
    """Read an uploaded CSV into a DataFrame of strings with normalized headers.

    Rows whose field count does not match the header are skipped. The frame
    index is the row's position in the file, header excluded.
    """
    try:
        content = upload.read().decode("utf-8-sig")
    except UnicodeDecodeError:
        return None, "CSV file must be UTF-8 encoded"

    lines = list(csv.reader(io.StringIO(content.strip()), skipinitialspace=True))
    if len(lines) < 2:
        return None, EMPTY_FILE_ERROR

    header, records = lines[0], lines[1:]
    rows, positions = [], []
    for position, record in enumerate(records):
        if len(record) != len(header):
            continue
        rows.append([value.strip() for value in record])
        positions.append(position)

    df = pd.DataFrame(rows, columns=header, index=positions, dtype=str)
    return normalize_dataframe(df)


def read_excel_upload(upload) -> Tuple[Optional[pd.DataFrame], Optional[str]]:
    """Read the first sheet of an uploaded .xlsx workbook"""
    try:
        df = pd.read_excel(upload, dtype=str, keep_default_na=False, engine="openpyxl")
    except (ValueError, KeyError, zipfile.BadZipFile):
        return None, EMPTY_EXCEL_ERROR
    return normalize_dataframe(df, EMPTY_EXCEL_ERROR)


def read_upload(upload) -> Tuple[Optional[pd.DataFrame], Optional[str]]:
    if upload.name.lower().endswith(".xlsx"):
        return read_excel_upload(upload)
    return read_csv_upload(upload)


def normalize_dataframe(df, empty_error=EMPTY_FILE_ERROR):
    df.columns = [str(column).strip().lower() for column in df.columns]
    if df.empty:
        return None, empty_error
    return df, None


# ==================== ROW PROCESSORS ====================


def import_staff_row(row: Dict[str, str], row_num: int) -> Tuple[bool, Optional[str]]:
    required = ["name", "username", "email", "role"]
    if not all(row.get(field) for field in required):
        return False, f"Row {row_num}: Missing required fields (name, username, email, role)"

    role = row["role"].upper()
    if role not in Role.values:
        return (
            False,
            f"Row {row_num}: Invalid role '{row['role']}'. Must be one of: {', '.join(Role.values)}",
        )

    form = StaffCreateForm(
        {
            "name": row["name"],
            "username": row["username"],
            "email": row["email"],
            "role": role,
            "department": row.get("department", ""),
        }
    )
    if not form.is_valid():
        return False, f"Row {row_num}: {first_form_error(form)}"

    create_staff_account(**form.cleaned_data)
    return True, None


def import_subject_row(row: Dict[str, str], row_num: int) -> Tuple[bool, Optional[str]]:
    if not row.get("code") or not row.get("name"):
        return False, f"Row {row_num}: Missing required fields (code, name)"

    form = SubjectForm({"code": row["code"], "name": row["name"]})
    if not form.is_valid():
        return False, f"Row {row_num}: {first_form_error(form)}"
    form.save()
    return True, None


def import_class_row(row: Dict[str, str], row_num: int) -> Tuple[bool, Optional[str]]:
    if not row.get("name"):
        return False, f"Row {row_num}: Missing required field (name)"

    form = ClassroomForm({"name": row["name"]})
    if not form.is_valid():
        return False, f"Row {row_num}: {first_form_error(form)}"
    form.save()
    return True, None


def import_student_row(row: Dict[str, str], row_num: int) -> Tuple[bool, Optional[str]]:
    if not all(row.get(field) for field in ("student_id", "name", "class_name")):
        return False, f"Row {row_num}: Missing required fields (student_id, name, class_name)"

    classroom = Classroom.objects.filter(name=row["class_name"]).first()
    if classroom is None:
        return False, f"Row {row_num}: Class '{row['class_name']}' not found"

    form = StudentForm(
        {
            "student_id": row["student_id"],
            "name": row["name"],
            "classroom": classroom.pk,
        }
    )
    if not form.is_valid():
        return False, f"Row {row_num}: {first_form_error(form)}"
    form.save()
    return True, None


ROW_IMPORTERS: Dict[str, Callable[[Dict[str, str], int], Tuple[bool, Optional[str]]]] = {
    "staff": import_staff_row,
    "subjects": import_subject_row,
    "classes": import_class_row,
    "students": import_student_row,
}


def import_dataframe(df: pd.DataFrame, import_type: str) -> Dict[str, Any]:
    """Import every row independently and collect per-row failures"""
    process_row = ROW_IMPORTERS[import_type]
    success_count = 0
    errors: List[str] = []

    for index, row in df.iterrows():
        row_num = index + 2
        row_dict = {k: str(v).strip() for k, v in row.to_dict().items()}
        try:
            with transaction.atomic():
                success, error = process_row(row_dict, row_num)
        except (IntegrityError, ValidationError) as e:
            success, error = False, f"Row {row_num}: {e}"

        if success:
            success_count += 1
        else:
            errors.append(error)

    logger.info(
        "Bulk import of %s finished: %d imported, %d failed",
        import_type,
        success_count,
        len(errors),
    )
    return {"success": success_count, "failed": len(errors), "errors": errors}


# ==================== TEMPLATES ====================


def get_template_data(import_type: str) -> Dict[str, List[str]]:
    """Sample rows for the downloadable CSV templates"""
    return {
        "staff": {
            "name": ["John Smith", "Jane Doe"],
            "username": ["jsmith", "jdoe"],
            "email": ["jsmith@school.edu", "jdoe@school.edu"],
            "role": ["TEACHER", "COORDINATOR"],
            "department": ["SCIENCE", "MATHEMATICS"],
        },
        "subjects": {
            "code": ["MATH101", "PHYS101"],
            "name": ["Mathematics", "Physics"],
        },
        "classes": {
            "name": ["A9 [AET]/1", "A10 [AMT]/1"],
        },
        "students": {
            "student_id": ["S1001", "S1002"],
            "name": ["Ahmed Ali", "Sara Khan"],
            "class_name": ["A9 [AET]/1", "A10 [AMT]/1"],
        },
    }[import_type]
