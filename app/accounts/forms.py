"""
Forms for the member pages.
"""

from django import forms
from django.core.validators import RegexValidator

phone_validator = RegexValidator(
    r"^[0-9+\-() ]{10,20}$",
    "Enter a valid phone number.",
)
postal_code_validator = RegexValidator(
    r"^[0-9]{3}-?[0-9]{4}$",
    "Enter a postal code such as 123-4567.",
)


class UserEditForm(forms.Form):
    """
    Profile edit form.

    The duplicate-email rule needs the account id, so it is enforced in
    the update view through AccountService rather than in clean_email().
    """

    name = forms.CharField(max_length=50)
    furigana = forms.CharField(max_length=50)
    postal_code = forms.CharField(max_length=10, validators=[postal_code_validator])
    address = forms.CharField(max_length=255)
    phone_number = forms.CharField(max_length=20, validators=[phone_validator])
    email = forms.EmailField(max_length=254)
    age = forms.IntegerField(min_value=0, max_value=150, required=False)
    occupation = forms.CharField(max_length=100, required=False)

    @classmethod
    def initial_for(cls, user):
        return {field: getattr(user, field) for field in cls.base_fields}
