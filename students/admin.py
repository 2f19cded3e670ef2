from django.contrib import admin

from unfold.admin import ModelAdmin

from .models import Enrollment, Student


@admin.register(Student)
class StudentAdmin(ModelAdmin):
    list_display = ('admission_number', 'first_name', 'last_name', 'gender', 'current_class', 'status')
    list_filter = ('status', 'gender', 'current_class')
    search_fields = ('admission_number', 'first_name', 'last_name', 'other_names')


@admin.register(Enrollment)
class EnrollmentAdmin(ModelAdmin):
    list_display = ('student', 'academic_year', 'class_assigned', 'status', 'average_score')
    list_filter = ('academic_year', 'status', 'class_assigned')
    search_fields = ('student__first_name', 'student__last_name', 'student__admission_number')
    raw_id_fields = ('student', 'promoted_from')
