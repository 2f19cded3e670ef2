from django import forms

from .models import AcademicYear


class AcademicYearForm(forms.ModelForm):
    """Form for creating/editing academic years."""
    class Meta:
        model = AcademicYear
        fields = ['year', 'name', 'start_date', 'end_date', 'is_current']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['is_current'].required = False

    def clean_year(self):
        year = self.cleaned_data['year']
        if year < 2000 or year > 2100:
            raise forms.ValidationError("Enter a calendar year between 2000 and 2100.")
        return year

    def clean(self):
        cleaned_data = super().clean()
        start_date = cleaned_data.get('start_date')
        end_date = cleaned_data.get('end_date')

        if start_date and end_date and start_date >= end_date:
            raise forms.ValidationError("End date must be after start date.")

        return cleaned_data
