from django.core.management.base import BaseCommand, CommandError

from base.views import factory_reset_data


class Command(BaseCommand):
    help = "Delete all operational data, keeping admin accounts and departments"

    def add_arguments(self, parser):
        parser.add_argument(
            "--yes",
            action="store_true",
            help="Confirm the reset without prompting",
        )

    def handle(self, *args, **options):
        if not options["yes"]:
            answer = input("This deletes all schedules, classes and staff. Type 'yes' to continue: ")
            if answer.strip().lower() != "yes":
                raise CommandError("Factory reset aborted")

        deleted = factory_reset_data()
        for label, count in deleted.items():
            self.stdout.write(f"{label}: {count} deleted")
        self.stdout.write(self.style.SUCCESS("Factory reset completed"))
