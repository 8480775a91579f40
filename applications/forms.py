from django import forms

from routing.models import OfficerAssignment
from .exceptions import ValidationError
from .models import Application


def raise_for_form(form):
    """Turn bound-form errors into a single workflow ValidationError."""
    if form.is_valid():
        return form.cleaned_data
    error_msg = "; ".join(
        f"{field}: {', '.join(errors)}" if field != '__all__' else ', '.join(errors)
        for field, errors in form.errors.items()
    )
    raise ValidationError(error_msg)


class ApplicationCreateForm(forms.Form):
    service_category_id = forms.IntegerField(min_value=1)
    preferred_officer_id = forms.IntegerField(min_value=1)
    application_details = forms.CharField(max_length=5000)

    def clean_application_details(self):
        details = self.cleaned_data['application_details'].strip()
        if not details:
            raise forms.ValidationError("Application details are required.")
        return details


class ValidateForm(forms.Form):
    is_documents_complete = forms.BooleanField(required=False)
    is_eligibility_verified = forms.BooleanField(required=False)
    validation_notes = forms.CharField(required=False)
    should_reject = forms.BooleanField(required=False)
    rejection_reason = forms.CharField(required=False)
    comments = forms.CharField(required=False)

    def clean(self):
        cleaned_data = super().clean()
        if cleaned_data.get('should_reject') and not cleaned_data.get('rejection_reason'):
            raise forms.ValidationError("Rejection reason is required when rejecting.")
        return cleaned_data


class CommentForm(forms.Form):
    comments = forms.CharField(required=False)


class RejectForm(forms.Form):
    rejection_reason = forms.CharField(required=False)
    comments = forms.CharField(required=False)

    def clean(self):
        cleaned_data = super().clean()
        if not cleaned_data.get('rejection_reason') and not cleaned_data.get('comments'):
            raise forms.ValidationError("Rejection reason is required.")
        return cleaned_data


class ForwardForm(forms.Form):
    target_officer_id = forms.IntegerField(min_value=1)
    priority = forms.TypedChoiceField(
        choices=OfficerAssignment.Priority.choices,
        coerce=int,
        required=False,
        empty_value=OfficerAssignment.Priority.MEDIUM,
    )
    instructions = forms.CharField()


class VerifyDocumentForm(forms.Form):
    is_verified = forms.BooleanField(required=False)
    notes = forms.CharField(required=False)


class OverrideForm(forms.Form):
    status = forms.ChoiceField(choices=Application.Status.choices)
    comments = forms.CharField()
