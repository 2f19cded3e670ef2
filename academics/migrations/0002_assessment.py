from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('academics', '0001_initial'),
        ('students', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Assessment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('year', models.PositiveIntegerField()),
                ('term', models.CharField(choices=[('T1', 'Term 1'), ('T2', 'Term 2'), ('T3', 'Term 3')], max_length=2)),
                ('project_score', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=5)),
                ('continuous_score', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=5)),
                ('eot_score', models.DecimalField(decimal_places=2, default=Decimal('0'), help_text='End of term examination score', max_digits=5)),
                ('competence_scores', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('class_subject', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assessments', to='academics.classsubject')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assessments', to='students.student')),
            ],
            options={
                'ordering': ['class_subject', 'student'],
                'unique_together': {('student', 'class_subject', 'year', 'term')},
            },
        ),
    ]
