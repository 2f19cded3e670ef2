from django import forms
from django.utils.translation import gettext_lazy as _

from academics.models import Class
from .models import Student
from .promotion import ACTIONS


class StudentForm(forms.ModelForm):
    """Form for creating/editing individual students."""

    class Meta:
        model = Student
        fields = [
            # Personal info
            'first_name', 'last_name', 'other_names',
            'date_of_birth', 'gender',
            # Guardian
            'guardian_name', 'guardian_phone', 'guardian_email',
            # Admission
            'admission_number', 'admission_date',
            # Enrollment
            'current_class',
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Only show active classes
        self.fields['current_class'].queryset = Class.objects.filter(is_active=True)
        self.fields['current_class'].required = False

    def clean_admission_number(self):
        number = self.cleaned_data['admission_number'].strip().upper()
        qs = Student.objects.filter(admission_number__iexact=number)
        if self.instance.pk:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise forms.ValidationError(_('A student with this admission number already exists.'))
        return number


class PromotionOverrideForm(forms.Form):
    """A class teacher's manual decision for one student."""
    student_id = forms.IntegerField()
    from_class_id = forms.IntegerField()
    to_class_id = forms.IntegerField(required=False)
    action = forms.CharField()
    reason = forms.CharField(max_length=500)
    year = forms.IntegerField(required=False)

    def clean_action(self):
        action = self.cleaned_data['action'].strip().upper()
        if action not in ACTIONS:
            raise forms.ValidationError(_('Action must be PROMOTE or REPEAT.'))
        return action

    def clean_reason(self):
        reason = self.cleaned_data['reason'].strip()
        if not reason:
            raise forms.ValidationError(_('A reason is required for an override.'))
        return reason
