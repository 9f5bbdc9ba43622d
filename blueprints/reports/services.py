# blueprints/reports/services.py
from __future__ import annotations
import io
import re
import zipfile
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from models import Assignment, StudentWork, Teacher, WorkStatus
from blueprints.assignments.services import get_owned_assignment
from blueprints.core.errors import NoSubmissions, ValidationError

EXPORT_KINDS = ("all", "drafts", "finals")
RULE = "=" * 37
THIN = "-" * 37
EMPTY_ANSWER = "[No answer provided]"

_UNSAFE = re.compile(r"[^A-Za-z0-9_\- ]")
_WS = re.compile(r"\s+")

@dataclass
class ExportFile:
    filename: str
    mimetype: str
    data: bytes

def sanitize_filename(value: str, fallback: str = "untitled") -> str:
    """Keep letters, digits, underscore, hyphen and space; everything else becomes '-'."""
    cleaned = _UNSAFE.sub("-", value or "").strip()
    return cleaned or fallback

def _fmt_dt(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S UTC") if value else "-"

def _work_timestamp(w: StudentWork) -> Optional[datetime]:
    return w.submitted_at if w.status == WorkStatus.FINAL else w.last_saved_at

def capacity_utilization(a: Assignment) -> int:
    if not a.max_students:
        return 0
    return round(100 * a.student_count / a.max_students)

def render_work(a: Assignment, w: StudentWork) -> str:
    """Plain-text document for one StudentWork; output depends only on the stored rows."""
    final = w.status == WorkStatus.FINAL
    status = w.status.value.upper()
    lines = [
        RULE,
        "HOMEWORK SUBMISSION - FINAL" if final else "HOMEWORK DRAFT",
        RULE,
        "",
        f"Assignment Title: {a.title}",
        f"Student Name: {w.student_name}",
        f"{'Final Submission' if final else 'Draft Saved'}: {_fmt_dt(_work_timestamp(w))}",
        f"Word Count: {w.word_count or 0}",
        f"Status: {status}" + ("" if final else " - NOT FINAL SUBMISSION"),
        f"Assignment Capacity: {a.student_count}/{a.max_students} students",
        "",
        THIN,
        "ASSIGNMENT QUESTION:",
        THIN,
        a.content,
        "",
    ]
    if a.instructions:
        lines += [THIN, "INSTRUCTIONS:", THIN, a.instructions, ""]
    answer = w.content if (w.content or "").strip() else EMPTY_ANSWER
    lines += [
        THIN,
        "STUDENT ANSWER" + ("" if final else " (DRAFT)") + ":",
        THIN,
        answer,
        "",
        RULE,
        f"End of {'Final Submission' if final else 'Draft'}",
        RULE,
        "",
    ]
    return "\n".join(lines)

def work_filename(w: StudentWork) -> str:
    ts = _work_timestamp(w) or w.last_saved_at
    stamp = ts.strftime("%Y-%m-%d_%H-%M-%S") if ts else "undated"
    return sanitize_filename(f"{w.student_name}_{stamp}_{w.status.value.upper()}") + ".txt"

def render_summary(a: Assignment, works: List[StudentWork]) -> str:
    finals = sum(1 for w in works if w.status == WorkStatus.FINAL)
    drafts = len(works) - finals
    students = len({w.student_key for w in works})
    lines = [
        "SUBMISSION SUMMARY",
        f"Assignment: {a.title}",
        f"Assignment Code: {a.assignment_code}",
        f"Total Students: {students}",
        f"Final Submissions: {finals}",
        f"Draft Only: {drafts}",
        f"Assignment Capacity: {a.student_count}/{a.max_students} students",
        "",
        "STUDENT STATUS:",
    ]
    for idx, w in enumerate(works, start=1):
        lines.append(
            f"{idx}. {w.student_name} - {w.status.value.upper()} - "
            f"{_fmt_dt(_work_timestamp(w))} - {w.word_count or 0} words"
        )
    lines += [
        "",
        "CAPACITY METRICS:",
        f"Current Students: {a.student_count}",
        f"Available Slots: {max(a.max_students - a.student_count, 0)}",
        f"Capacity Utilization: {capacity_utilization(a)}%",
        "",
    ]
    return "\n".join(lines)

def select_work(a: Assignment, kind: str = "all", student: Optional[str] = None) -> List[StudentWork]:
    kind = (kind or "all").lower()
    if kind not in EXPORT_KINDS:
        raise ValidationError(f"Unknown export type '{kind}'")
    q = StudentWork.query.filter(StudentWork.assignment_id == a.id)
    if kind == "drafts":
        q = q.filter(StudentWork.status == WorkStatus.DRAFT)
    elif kind == "finals":
        q = q.filter(StudentWork.status == WorkStatus.FINAL)
    if student:
        q = q.filter(StudentWork.student_key == _WS.sub(" ", student).strip().lower())
    # стабильный порядок: имя, затем статус
    return q.order_by(StudentWork.student_key.asc(), StudentWork.status.asc(), StudentWork.id.asc()).all()

def _zip(a: Assignment, works: List[StudentWork]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for w in works:
            folder = "Final_Submissions" if w.status == WorkStatus.FINAL else "Draft_Submissions"
            zf.writestr(f"{folder}/{work_filename(w)}", render_work(a, w))
        zf.writestr("submission_summary.txt", render_summary(a, works))
    return buf.getvalue()

def export_submissions(teacher: Teacher, assignment_id: int, kind: str = "all",
                       student: Optional[str] = None) -> ExportFile:
    a = get_owned_assignment(teacher, assignment_id)
    works = select_work(a, kind, student)
    if not works:
        raise NoSubmissions()
    if len(works) == 1:
        w = works[0]
        return ExportFile(
            filename=work_filename(w),
            mimetype="text/plain; charset=utf-8",
            data=render_work(a, w).encode("utf-8"),
        )
    return ExportFile(
        filename=sanitize_filename(f"{a.title}_Submissions") + ".zip",
        mimetype="application/zip",
        data=_zip(a, works),
    )
