import logging

from django.db.models import ProtectedError
from django.http import HttpRequest, JsonResponse
from django.views.decorators.http import require_http_methods

from base.api_utils import (
    api_login_required,
    first_form_error,
    form_data_from_payload,
    json_error,
    read_json,
)
from base.views import get_user_role
from staff.models import Role
from .forms import (
    CLASSROOM_FIELD_MAP,
    STUDENT_FIELD_MAP,
    SUBJECT_FIELD_MAP,
    ClassroomForm,
    StudentForm,
    SubjectForm,
)
from .models import Classroom, Student, Subject

logger = logging.getLogger(__name__)


# ==================== HELPER FUNCTIONS ====================


def serialize_classroom(classroom):
    return {
        "id": classroom.id,
        "name": classroom.name,
        "gradeLevel": classroom.grade_level,
    }


def serialize_subject(subject):
    return {"id": subject.id, "name": subject.name, "code": subject.code}


def serialize_student(student):
    return {
        "id": student.id,
        "name": student.name,
        "studentId": student.student_id,
        "classId": student.classroom_id,
        "className": student.classroom.name,
    }


def save_form_from_request(request, form_class, field_map, instance=None):
    """Validate the JSON body with a ModelForm; returns (object, error_response)"""
    payload, error = read_json(request)
    if error:
        return None, error

    form = form_class(
        form_data_from_payload(
            payload, field_map, instance=instance, fields=form_class._meta.fields
        ),
        instance=instance,
    )
    if not form.is_valid():
        return None, json_error(first_form_error(form))
    return form.save(), None


def is_admin(request):
    return get_user_role(request.user) == Role.ADMIN


# ==================== CLASSES ====================


@require_http_methods(["GET", "POST"])
def classes(request: HttpRequest):
    if request.method == "GET":
        return JsonResponse(
            [serialize_classroom(c) for c in Classroom.objects.all()], safe=False
        )

    if not request.user.is_authenticated:
        return json_error("Not authenticated", status=401)
    if not is_admin(request):
        return json_error("Access denied", status=403)

    classroom, error = save_form_from_request(request, ClassroomForm, CLASSROOM_FIELD_MAP)
    if error:
        return error
    return JsonResponse(serialize_classroom(classroom), status=201)


@api_login_required
@require_http_methods(["PATCH", "DELETE"])
def class_detail(request: HttpRequest, class_id: int):
    if not is_admin(request):
        return json_error("Access denied", status=403)

    classroom = Classroom.objects.filter(pk=class_id).first()
    if classroom is None:
        return json_error("Class not found", status=404)

    if request.method == "DELETE":
        if classroom.exam_events.exists():
            return json_error(
                "Cannot delete class that has scheduled exams. Remove the exams first."
            )
        if classroom.students.exists():
            return json_error(
                "Cannot delete class that has students. Move or remove the students first."
            )
        try:
            classroom.delete()
        except ProtectedError:
            return json_error(
                "Cannot delete class that is used by learning plans. Remove them first."
            )
        logger.info("Class %s deleted by %s", classroom.name, request.user)
        return JsonResponse({"message": "Class deleted successfully"})

    classroom, error = save_form_from_request(
        request, ClassroomForm, CLASSROOM_FIELD_MAP, instance=classroom
    )
    if error:
        return error
    return JsonResponse(serialize_classroom(classroom))


# ==================== SUBJECTS ====================


@require_http_methods(["GET", "POST"])
def subjects(request: HttpRequest):
    if request.method == "GET":
        return JsonResponse(
            [serialize_subject(s) for s in Subject.objects.all()], safe=False
        )

    if not request.user.is_authenticated:
        return json_error("Not authenticated", status=401)
    if not is_admin(request):
        return json_error("Access denied", status=403)

    subject, error = save_form_from_request(request, SubjectForm, SUBJECT_FIELD_MAP)
    if error:
        return error
    return JsonResponse(serialize_subject(subject), status=201)


@api_login_required
@require_http_methods(["PATCH", "DELETE"])
def subject_detail(request: HttpRequest, subject_id: int):
    if not is_admin(request):
        return json_error("Access denied", status=403)

    subject = Subject.objects.filter(pk=subject_id).first()
    if subject is None:
        return json_error("Subject not found", status=404)

    if request.method == "DELETE":
        if subject.exam_events.exists():
            return json_error(
                "Cannot delete subject that has scheduled exams. Remove the exams first."
            )
        try:
            subject.delete()
        except ProtectedError:
            return json_error(
                "Cannot delete subject that is used by learning plans. Remove them first."
            )
        logger.info("Subject %s deleted by %s", subject.code, request.user)
        return JsonResponse({"message": "Subject deleted successfully"})

    subject, error = save_form_from_request(
        request, SubjectForm, SUBJECT_FIELD_MAP, instance=subject
    )
    if error:
        return error
    return JsonResponse(serialize_subject(subject))


# ==================== STUDENTS ====================


@api_login_required
@require_http_methods(["GET", "POST"])
def students(request: HttpRequest):
    if request.method == "GET":
        queryset = Student.objects.select_related("classroom")
        class_id = request.GET.get("classId")
        if class_id:
            if not class_id.isdigit():
                return json_error("Invalid classId")
            queryset = queryset.filter(classroom_id=int(class_id))
        return JsonResponse([serialize_student(s) for s in queryset], safe=False)

    if not is_admin(request):
        return json_error("Access denied", status=403)

    student, error = save_form_from_request(request, StudentForm, STUDENT_FIELD_MAP)
    if error:
        return error
    return JsonResponse(serialize_student(student), status=201)


@api_login_required
@require_http_methods(["PATCH", "DELETE"])
def student_detail(request: HttpRequest, student_id: int):
    if not is_admin(request):
        return json_error("Access denied", status=403)

    student = Student.objects.select_related("classroom").filter(pk=student_id).first()
    if student is None:
        return json_error("Student not found", status=404)

    if request.method == "DELETE":
        student.delete()
        return JsonResponse({"message": "Student deleted successfully"})

    student, error = save_form_from_request(
        request, StudentForm, STUDENT_FIELD_MAP, instance=student
    )
    if error:
        return error
    return JsonResponse(serialize_student(student))
