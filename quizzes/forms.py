"""Forms validating signup and profile payloads posted to the JSON API."""

from __future__ import annotations

import re

from django import forms
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password

from .profile_services import validate_location
from .reference_data import CONTINENT_COUNTRIES, list_countries

USERNAME_CLEAN_RE = re.compile(r"[^A-Za-z0-9@.+_-]+")

CONTINENT_CHOICES = [("", "")] + [(name, name) for name in CONTINENT_COUNTRIES]
COUNTRY_CHOICES = [("", "")] + [(name, name) for name in list_countries()]


class LocationForm(forms.Form):
    continent = forms.ChoiceField(choices=CONTINENT_CHOICES, required=False)
    country = forms.ChoiceField(choices=COUNTRY_CHOICES, required=False)

    def clean(self):
        cleaned = super().clean()
        if self.errors:
            return cleaned
        continent, country = validate_location(
            continent=cleaned.get("continent"),
            country=cleaned.get("country"),
        )
        cleaned["continent"] = continent
        cleaned["country"] = country
        return cleaned


class SignupForm(LocationForm):
    username = forms.CharField(required=False, max_length=150)
    email = forms.EmailField(required=True)
    password = forms.CharField(min_length=1, strip=False)

    def clean_username(self) -> str:
        return str(self.cleaned_data.get("username") or "").strip()

    def clean_email(self) -> str:
        email = str(self.cleaned_data.get("email") or "").strip().lower()
        if get_user_model().objects.filter(email__iexact=email).exists():
            raise forms.ValidationError("Email is already registered.")
        return email

    def clean(self):
        cleaned = super().clean()
        username = str(cleaned.get("username") or "").strip()
        email = str(cleaned.get("email") or "").strip().lower()
        if not username and email:
            username = self._generate_username_from_email(email)
            cleaned["username"] = username
        elif username and get_user_model().objects.filter(username__iexact=username).exists():
            self.add_error("username", "Username is already taken.")

        password = cleaned.get("password")
        if password and username:
            try:
                validate_password(password, user=get_user_model()(username=username, email=email))
            except forms.ValidationError as exc:
                self.add_error("password", exc)
        return cleaned

    def _generate_username_from_email(self, email: str) -> str:
        user_model = get_user_model()
        local_part = email.split("@", 1)[0].strip().lower()
        normalized = USERNAME_CLEAN_RE.sub("-", local_part).strip("-_.")
        seed = normalized or "player"

        max_length = int(user_model._meta.get_field("username").max_length or 150)
        seed = seed[:max_length]
        if not user_model.objects.filter(username=seed).exists():
            return seed

        for index in range(2, 1000):
            suffix = f"-{index}"
            trimmed_seed = seed[: max_length - len(suffix)] or "player"
            candidate = f"{trimmed_seed}{suffix}"
            if not user_model.objects.filter(username=candidate).exists():
                return candidate

        raise forms.ValidationError("Could not generate a username automatically. Provide one explicitly.")
