from django import forms


class ReserveRoomForm(forms.Form):
    """Form for reserving a room for a stay."""
    room = forms.IntegerField(min_value=1)
    start_date = forms.DateField(input_formats=['%Y-%m-%d'])
    end_date = forms.DateField(input_formats=['%Y-%m-%d'])

    def clean(self):
        cleaned_data = super().clean()
        start_date = cleaned_data.get('start_date')
        end_date = cleaned_data.get('end_date')

        if start_date and end_date and end_date < start_date:
            raise forms.ValidationError('End date must not be before start date.')

        return cleaned_data


class DateRangeForm(forms.Form):
    """Optional date window taken from the query string."""
    start_date = forms.DateField(input_formats=['%Y-%m-%d'], required=False)
    end_date = forms.DateField(input_formats=['%Y-%m-%d'], required=False)

    def clean(self):
        cleaned_data = super().clean()
        start_date = cleaned_data.get('start_date')
        end_date = cleaned_data.get('end_date')

        if start_date and end_date and end_date < start_date:
            raise forms.ValidationError('End date must not be before start date.')

        return cleaned_data
