from django.contrib.auth.models import User
from django.core.management.base import BaseCommand
from django.db import transaction

from staff.models import Department, Role, Staff, create_staff_account
from students.models import Classroom, Student, Subject

DEMO_PASSWORD = "password123"

DEMO_STAFF = [
    ("teacher", "Demo Teacher", "teacher@example.com", Role.TEACHER, "MATHEMATICS"),
    ("admin", "Demo Admin", "admin@example.com", Role.ADMIN, None),
    ("coordinator", "Demo Coordinator", "coordinator@example.com", Role.COORDINATOR, "SCIENCE"),
    ("principal", "Demo Principal", "principal@example.com", Role.PRINCIPAL, None),
    ("vice_principal", "Demo Vice Principal", "vp@example.com", Role.VICE_PRINCIPAL, None),
    ("lead_teacher", "Demo Lead Teacher", "lead@example.com", Role.LEAD_TEACHER, "MATHEMATICS"),
    ("teacher1", "Teacher One", "keating@school.com", Role.TEACHER, "ENGLISH"),
    ("teacher2", "Teacher Two", "klump@school.com", Role.TEACHER, "SCIENCE"),
]

DEMO_SUBJECTS = [
    ("MATH101", "Mathematics"),
    ("PHYS101", "Physics"),
    ("CHEM101", "Chemistry"),
    ("ENG101", "English"),
    ("CS101", "Computer Science"),
]

DEMO_CLASSES = ["A9 [AMT]/1", "A10 [AMT]/1", "A11 [ADV]/1", "A12 [ADV]/1"]


class Command(BaseCommand):
    help = "Seed demo staff, subjects, classes and students. Safe to re-run."

    @transaction.atomic
    def handle(self, *args, **options):
        for username, name, email, role, department_name in DEMO_STAFF:
            department = None
            if department_name:
                department, _ = Department.objects.get_or_create(
                    name=department_name,
                    defaults={"display_name": department_name.replace("_", " ").title()},
                )

            user = User.objects.filter(username=username).first()
            if user is None:
                create_staff_account(
                    name, username, email, role=role, department=department, password=DEMO_PASSWORD
                )
                self.stdout.write(f"Created user: {username}")
                continue

            Staff.objects.update_or_create(
                user=user, defaults={"role": role, "department": department}
            )
            self.stdout.write(f"Updated user: {username}")

        for code, name in DEMO_SUBJECTS:
            Subject.objects.get_or_create(code=code, defaults={"name": name})

        for class_name in DEMO_CLASSES:
            classroom, created = Classroom.objects.get_or_create(name=class_name)
            if not created:
                continue
            for number in range(1, 6):
                Student.objects.create(
                    name=f"Student {number} ({class_name})",
                    student_id=f"S{classroom.id:03d}{number:02d}",
                    classroom=classroom,
                )

        self.stdout.write(self.style.SUCCESS("Demo data seeded"))
