"""
Management command to seed academic data: academic years, Subjects and Classes.

Usage:
    python manage.py seed_academics

    # With specific options
    python manage.py seed_academics --years --year 2025
    python manage.py seed_academics --classes --streams A B

    # Force overwrite existing subjects
    python manage.py seed_academics --force
"""
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from academics.models import Class, Subject
from academics.taxonomy import A_LEVEL_STREAMS, O_LEVEL_STREAMS, Rank, rank_requires_stream
from core.models import AcademicYear

CORE_SUBJECTS = [
    'Mathematics', 'English', 'Physics', 'Chemistry', 'Biology',
    'History', 'Geography',
]

ELECTIVE_SUBJECTS = [
    'Literature', 'Economics', 'Entrepreneurship', 'Computer Studies',
    'Fine Art', 'Music', 'Physical Education', 'Religious Education',
]


class Command(BaseCommand):
    help = 'Seed academic data: academic years, subjects and S1-S6 classes'

    def add_arguments(self, parser):
        parser.add_argument(
            '--force',
            action='store_true',
            help='Overwrite existing subjects',
        )
        parser.add_argument(
            '--year',
            type=int,
            default=timezone.now().year,
            help='Calendar year to mark as current (default: this year)',
        )
        parser.add_argument(
            '--streams',
            nargs='*',
            choices=O_LEVEL_STREAMS,
            default=[],
            help='O-Level streams to create for S1-S4 (default: one class per rank)',
        )
        parser.add_argument(
            '--years',
            action='store_true',
            help='Seed only academic years',
        )
        parser.add_argument(
            '--subjects',
            action='store_true',
            help='Seed only subjects',
        )
        parser.add_argument(
            '--classes',
            action='store_true',
            help='Seed only classes',
        )

    def handle(self, *args, **options):
        # If no specific option, seed all
        seed_all = not (options['years'] or options['subjects'] or options['classes'])

        with transaction.atomic():
            if seed_all or options['years']:
                self.create_years(options['year'])
            if seed_all or options['subjects']:
                self.create_subjects(options['force'])
            if seed_all or options['classes']:
                self.create_classes(options['streams'])

        self.stdout.write(self.style.SUCCESS('Successfully seeded academic data'))

    def create_years(self, year):
        """The current year plus the following one, so promotions can be processed."""
        current, _ = AcademicYear.objects.update_or_create(year=year, defaults={'is_current': True})
        following, created = AcademicYear.objects.get_or_create(year=year + 1)
        self.stdout.write(f'  Current year: {current}')
        if created:
            self.stdout.write(f'  Created: {following}')

    def create_subjects(self, force):
        if Subject.objects.exists() and not force:
            self.stdout.write('Subjects already exist. Use --force to overwrite.')
            return

        created = 0
        for names, is_core in ((CORE_SUBJECTS, True), (ELECTIVE_SUBJECTS, False)):
            for name in names:
                _, was_created = Subject.objects.update_or_create(
                    name=name, defaults={'is_core': is_core, 'is_active': True}
                )
                created += was_created

        self.stdout.write(self.style.SUCCESS(f'Created {created} subjects'))

    def create_classes(self, streams):
        created = 0
        for rank in Rank:
            if rank_requires_stream(rank):
                rank_streams = A_LEVEL_STREAMS
            else:
                rank_streams = streams or ['']

            for stream in rank_streams:
                class_obj, was_created = Class.objects.get_or_create(rank=rank.value, stream=stream)
                if was_created:
                    created += 1
                    self.stdout.write(f'  Created class: {class_obj.name}')

        self.stdout.write(self.style.SUCCESS(f'Created {created} classes'))
