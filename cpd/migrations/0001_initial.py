from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


PROFESSION_CHOICES = [
    ('Lekarz', 'Physician'),
    ('Lekarz dentysta', 'Dentist'),
    ('Pielęgniarka', 'Nurse'),
    ('Położna', 'Midwife'),
    ('Fizjoterapeuta', 'Physiotherapist'),
    ('Ratownik medyczny', 'Paramedic'),
    ('Farmaceuta', 'Pharmacist'),
    ('Diagnosta laboratoryjny', 'Laboratory diagnostician'),
    ('Inne', 'Other'),
]

ACTIVITY_TYPE_CHOICES = [
    ('Kurs stacjonarny', 'Stationary course'),
    ('Kurs online / webinar', 'Online course / webinar'),
    ('Konferencja / kongres', 'Conference / congress'),
    ('Warsztaty praktyczne', 'Practical workshop'),
    ('Publikacja naukowa', 'Scientific publication'),
    ('Prowadzenie szkolenia', 'Teaching a training'),
    ('Samokształcenie', 'Self-study'),
    ('Staż / praktyka', 'Internship / placement'),
]

YEAR_VALIDATORS = [
    django.core.validators.MinValueValidator(1900),
    django.core.validators.MaxValueValidator(2100),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Training',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=300)),
                ('organizer', models.CharField(blank=True, max_length=200)),
                ('points', models.DecimalField(blank=True, decimal_places=2, max_digits=7, null=True, validators=[django.core.validators.MinValueValidator(0)])),
                ('type', models.CharField(blank=True, choices=[('online', 'Online'), ('stacjonarne', 'Stationary'), ('hybrydowe', 'Hybrid')], max_length=20)),
                ('start_date', models.DateField(blank=True, null=True)),
                ('end_date', models.DateField(blank=True, null=True)),
                ('category', models.CharField(blank=True, max_length=100)),
                ('profession', models.CharField(blank=True, choices=PROFESSION_CHOICES, max_length=50)),
                ('voivodeship', models.CharField(blank=True, max_length=50)),
                ('external_url', models.URLField(blank=True)),
                ('is_partner', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['start_date', 'title'],
                'indexes': [
                    models.Index(fields=['profession', 'start_date'], name='cpd_training_prof_start_idx'),
                    models.Index(fields=['is_partner'], name='cpd_training_partner_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Profile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('profession', models.CharField(blank=True, choices=PROFESSION_CHOICES, max_length=50)),
                ('profession_other', models.CharField(blank=True, help_text="Free-text profession when 'Other' is selected", max_length=200)),
                ('pwz_number', models.CharField(blank=True, max_length=20)),
                ('pwz_issue_date', models.DateField(blank=True, null=True)),
                ('period_start', models.PositiveSmallIntegerField(default=2023, validators=YEAR_VALIDATORS)),
                ('period_end', models.PositiveSmallIntegerField(default=2026, validators=YEAR_VALIDATORS)),
                ('required_points', models.PositiveIntegerField(default=200, help_text='Points required over the whole reporting period')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='cpd_profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['user__username'],
            },
        ),
        migrations.CreateModel(
            name='Activity',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=ACTIVITY_TYPE_CHOICES, default='Kurs online / webinar', max_length=50)),
                ('points', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=7, validators=[django.core.validators.MinValueValidator(0)])),
                ('year', models.PositiveSmallIntegerField(validators=YEAR_VALIDATORS)),
                ('organizer', models.CharField(blank=True, max_length=200, null=True)),
                ('status', models.CharField(choices=[('planned', 'Planned'), ('done', 'Done')], default='done', max_length=10)),
                ('planned_start_date', models.DateField(blank=True, null=True)),
                ('certificate_path', models.CharField(blank=True, max_length=500, null=True)),
                ('certificate_name', models.CharField(blank=True, max_length=255, null=True)),
                ('certificate_mime', models.CharField(blank=True, max_length=100, null=True)),
                ('certificate_size', models.BigIntegerField(blank=True, null=True)),
                ('certificate_uploaded_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('training', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='activities', to='cpd.training')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cpd_activities', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name_plural': 'Activities',
                'ordering': ['-year', '-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'year'], name='cpd_activity_user_year_idx'),
                    models.Index(fields=['user', 'status'], name='cpd_activity_user_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ActivityDocument',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('certificate', 'Certificate'), ('document', 'Document')], default='document', max_length=15)),
                ('path', models.CharField(max_length=500)),
                ('name', models.CharField(blank=True, max_length=255, null=True)),
                ('mime', models.CharField(blank=True, max_length=100, null=True)),
                ('size', models.BigIntegerField(blank=True, null=True)),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                ('activity', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='documents', to='cpd.activity')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cpd_documents', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-uploaded_at'],
            },
        ),
    ]
