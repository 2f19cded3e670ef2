from django.contrib import admin

from unfold.admin import ModelAdmin

from .models import Teacher


@admin.register(Teacher)
class TeacherAdmin(ModelAdmin):
    list_display = ('staff_id', 'first_name', 'last_name', 'email', 'status')
    list_filter = ('status',)
    search_fields = ('staff_id', 'first_name', 'last_name', 'email')
