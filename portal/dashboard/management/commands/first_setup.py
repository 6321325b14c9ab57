from decouple import config
from django.conf import settings
from django.contrib.auth.models import User
from django.core.management import call_command
from django.core.management.base import BaseCommand

from staff.models import DEFAULT_DEPARTMENTS, Department, Role, Staff


class Command(BaseCommand):
    help = "Initial setup: migrate, create default departments, create superuser"

    def handle(self, *args, **options):
        self.stdout.write("Creating migrations...")
        call_command("makemigrations", *settings.LOCAL_APPS)
        self.stdout.write("Applying migrations...")
        call_command("migrate")

        for name in DEFAULT_DEPARTMENTS:
            _, created = Department.objects.get_or_create(
                name=name, defaults={"display_name": name.replace("_", " ").title()}
            )
            if created:
                self.stdout.write(f"Created department: {name}")

        # Create superuser from env vars
        username = config("DJANGO_SUPERUSER_USERNAME", default="admin")
        email = config("DJANGO_SUPERUSER_EMAIL", default="admin@school.local")
        password = config("DJANGO_SUPERUSER_PASSWORD", default="admin123")

        user = User.objects.filter(username=username).first()
        if user is None:
            user = User.objects.create_superuser(
                username=username, email=email, password=password
            )
            self.stdout.write(f"Created superuser: {username}")
        else:
            self.stdout.write(f"Superuser {username} already exists")

        Staff.objects.get_or_create(user=user, defaults={"role": Role.ADMIN})
        self.stdout.write(self.style.SUCCESS("Setup complete"))
