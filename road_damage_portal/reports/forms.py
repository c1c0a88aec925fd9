import re

from django import forms
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError

from .models import Report

User = get_user_model()

PHONE_PATTERN = re.compile(r"^\d{10}$")
MIN_LOCATION_LENGTH = 5


class ReportSubmissionForm(forms.ModelForm):
    reporter_phone = forms.CharField(max_length=20)

    class Meta:
        model = Report
        fields = [
            "reporter_name",
            "reporter_phone",
            "reporter_email",
            "damage_type",
            "severity",
            "location",
            "landmark",
            "ward",
            "description",
            "image_url",
            "gps_lat",
            "gps_lng",
        ]

    def clean_reporter_name(self):
        name = self.cleaned_data["reporter_name"].strip()
        if len(name) < 2:
            raise ValidationError("Name must be at least 2 characters.")
        return name

    def clean_reporter_phone(self):
        phone = re.sub(r"[\s-]", "", self.cleaned_data["reporter_phone"])
        if not PHONE_PATTERN.match(phone):
            raise ValidationError("Enter a valid 10-digit phone number.")
        return phone

    def clean_reporter_email(self):
        return self.cleaned_data.get("reporter_email", "").strip().lower()

    def clean_location(self):
        location = self.cleaned_data["location"].strip()
        if len(location) < MIN_LOCATION_LENGTH:
            raise ValidationError(f"Location must be at least {MIN_LOCATION_LENGTH} characters.")
        return location

    def clean_gps_lat(self):
        latitude = self.cleaned_data.get("gps_lat")
        if latitude is not None and not -90 <= latitude <= 90:
            raise ValidationError("Latitude must be between -90 and 90.")
        return latitude

    def clean_gps_lng(self):
        longitude = self.cleaned_data.get("gps_lng")
        if longitude is not None and not -180 <= longitude <= 180:
            raise ValidationError("Longitude must be between -180 and 180.")
        return longitude

    def clean(self):
        cleaned_data = super().clean()
        latitude = cleaned_data.get("gps_lat")
        longitude = cleaned_data.get("gps_lng")
        if (latitude is None) != (longitude is None) and not self.has_error("gps_lat") and not self.has_error("gps_lng"):
            raise ValidationError("GPS coordinates need both latitude and longitude.")
        return cleaned_data


class WorkerCreateForm(forms.Form):
    username = forms.CharField(max_length=150)
    email = forms.EmailField()
    password = forms.CharField(min_length=8)
    full_name = forms.CharField(max_length=150, required=False)

    def clean_username(self):
        username = self.cleaned_data["username"].strip()
        if User.objects.filter(username__iexact=username).exists():
            raise ValidationError("A user with this username already exists.")
        return username

    def clean_email(self):
        email = self.cleaned_data["email"].lower()
        if User.objects.filter(email__iexact=email).exists():
            raise ValidationError("An account with this email already exists.")
        return email
