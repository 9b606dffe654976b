# core/forms.py

from django import forms


class WeeklyGoalForm(forms.Form):
    target = forms.IntegerField(min_value=1, max_value=10000)


class WeeklyRecordEditForm(forms.Form):
    """
    Admin override of a logged week. Only the submitted fields are applied;
    nothing is recomputed from the archived projects.
    """
    week_display = forms.CharField(max_length=50, required=False)
    completed = forms.IntegerField(min_value=0, required=False)
    target = forms.IntegerField(min_value=1, required=False)
    top_salesperson_name = forms.CharField(max_length=100, required=False)
    top_salesperson_projects = forms.IntegerField(min_value=0, required=False)

    def clean(self):
        cleaned_data = super().clean()
        unknown = sorted(set(self.data) - set(self.fields))
        if unknown:
            raise forms.ValidationError(f"Unknown field(s): {', '.join(unknown)}")
        if not any(field in self.data for field in self.fields):
            raise forms.ValidationError("Nothing to update")
        for field in self.fields:
            if field in self.data and field not in self.errors and cleaned_data.get(field) in (None, ''):
                self.add_error(field, "This field cannot be blank.")
        return cleaned_data

    def patch(self):
        """Cleaned values of the fields that were actually submitted."""
        return {field: self.cleaned_data[field] for field in self.fields if field in self.data}
