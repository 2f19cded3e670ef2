from django import forms
from .models import Teacher


class TeacherForm(forms.ModelForm):
    class Meta:
        model = Teacher
        # We can list fields explicitly to control order
        fields = [
            'first_name', 'middle_name', 'last_name', 'gender',
            'date_of_birth', 'staff_id', 'status',
            'qualification', 'subject_specialization', 'employment_date',
            'phone_number', 'email',
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['email'].required = True
        self.fields['qualification'].required = True

    def clean_email(self):
        email = self.cleaned_data['email'].strip().lower()
        duplicates = Teacher.objects.filter(email__iexact=email)
        if self.instance.pk:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise forms.ValidationError('A teacher with this email already exists.')
        return email
