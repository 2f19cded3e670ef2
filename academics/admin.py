from django.contrib import admin

from unfold.admin import ModelAdmin, TabularInline

from .models import Assessment, Class, ClassSubject, Competence, Subject


class CompetenceInline(TabularInline):
    model = Competence
    extra = 0
    fields = ('year', 'term', 'idx', 'name', 'max_score')


@admin.register(Class)
class ClassAdmin(ModelAdmin):
    list_display = ('name', 'rank', 'stream', 'level', 'class_teacher', 'is_active')
    list_filter = ('level', 'rank', 'is_active')
    search_fields = ('name', 'stream')
    readonly_fields = ('name', 'level')


@admin.register(Subject)
class SubjectAdmin(ModelAdmin):
    list_display = ('name', 'is_core', 'is_active')
    list_filter = ('is_core', 'is_active')
    search_fields = ('name',)


@admin.register(ClassSubject)
class ClassSubjectAdmin(ModelAdmin):
    list_display = ('subject', 'class_assigned', 'year', 'is_core', 'instructor', 'instructor_initials')
    list_filter = ('year', 'is_core', 'class_assigned')
    search_fields = ('subject__name', 'class_assigned__name')
    inlines = [CompetenceInline]


@admin.register(Assessment)
class AssessmentAdmin(ModelAdmin):
    list_display = ('student', 'class_subject', 'year', 'term', 'continuous_score', 'eot_score')
    list_filter = ('year', 'term')
    search_fields = ('student__first_name', 'student__last_name', 'student__admission_number')
