from django import forms

from .config import config
from .models import Class
from .taxonomy import Rank


class ClassForm(forms.ModelForm):
    """Form for creating/editing classes. Name and level are derived on save."""

    rank = forms.CharField(max_length=2)
    stream = forms.CharField(max_length=20, required=False)

    class Meta:
        model = Class
        fields = ['rank', 'stream', 'class_teacher', 'is_active']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['is_active'].required = False

        from teachers.models import Teacher
        self.fields['class_teacher'].queryset = Teacher.objects.filter(status='active').order_by('first_name')
        self.fields['class_teacher'].required = False
        self.fields['class_teacher'].label = "Class Teacher"

    def clean_rank(self):
        parsed = Rank.parse(self.cleaned_data.get('rank'))
        if parsed is None:
            raise forms.ValidationError('Select a valid rank (S1 to S6).')
        return parsed.value

    def clean_stream(self):
        return (self.cleaned_data.get('stream') or '').strip()

    def clean(self):
        cleaned_data = super().clean()
        # Stream rules live in Class.clean(), which runs during model validation
        if 'is_active' not in self.data and self.instance.pk is None:
            cleaned_data['is_active'] = True
        return cleaned_data


class CompetenceForm(forms.Form):
    """One competence row of a term's competence set."""
    idx = forms.IntegerField(required=False, min_value=1)
    name = forms.CharField(max_length=200)
    max_score = forms.IntegerField(required=False)

    def clean_name(self):
        name = self.cleaned_data['name'].strip()
        if not name:
            raise forms.ValidationError('Competence name is required')
        return name

    def clean_max_score(self):
        score = self.cleaned_data.get('max_score')
        if score is None:
            return config.DEFAULT_COMPETENCE_MAX_SCORE
        if score < config.COMPETENCE_MIN_SCORE or score > config.COMPETENCE_MAX_SCORE:
            raise forms.ValidationError(
                f'Max score must be between {config.COMPETENCE_MIN_SCORE} and {config.COMPETENCE_MAX_SCORE}'
            )
        return score


class SetupSubjectForm(forms.Form):
    """One subject entry of a class setup payload; competences are checked with CompetenceForm."""
    subject_name = forms.CharField(max_length=100)
    is_core = forms.BooleanField(required=False)
    instructor_id = forms.UUIDField(required=False)
    instructor_initials = forms.CharField(max_length=5, required=False)

    def clean_subject_name(self):
        if not isinstance(self.data.get('subject_name'), str):
            raise forms.ValidationError('Subject name must be text')
        name = self.cleaned_data['subject_name'].strip()
        if not name:
            raise forms.ValidationError('Subject name is required')
        return name


class AssessmentForm(forms.Form):
    """Scores of one student for one subject and term."""
    project_score = forms.DecimalField(required=False, min_value=0, max_value=100, decimal_places=2)
    continuous_score = forms.DecimalField(required=False, min_value=0, max_value=100, decimal_places=2)
    eot_score = forms.DecimalField(required=False, min_value=0, max_value=100, decimal_places=2)
    competence_scores = forms.JSONField(required=False)

    def clean_competence_scores(self):
        value = self.cleaned_data.get('competence_scores')
        if value in (None, ''):
            return {}
        if not isinstance(value, dict):
            raise forms.ValidationError('Competence scores must be an object')
        return value
