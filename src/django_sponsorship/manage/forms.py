"""Forms for the sponsorship management API."""

from django import forms

from django_sponsorship.sponsors.models import SponsorshipLevel


class SponsorshipLevelForm(forms.ModelForm):
    """Form for creating or editing a sponsorship level.

    ``slots_filled`` is not editable; it only moves through the level
    registry's slot accounting.
    """

    class Meta:
        model = SponsorshipLevel
        fields = ["name", "colour", "value", "slots_total", "recognition_text", "order", "enabled"]

    def clean_name(self) -> str:
        """Strip surrounding whitespace and reject blank names."""
        name = (self.cleaned_data.get("name") or "").strip()
        if not name:
            raise forms.ValidationError("Level name is required.")
        return name

    def clean_colour(self) -> str:
        """Normalize the hex colour to upper case."""
        return (self.cleaned_data.get("colour") or "").upper()
