from flask_wtf import FlaskForm
from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length, Optional, ValidationError

from confidence_pool.models import Participant


class ProfileForm(FlaskForm):
    email = StringField("Email", validators=[Optional(), Email()])
    display_name = StringField(
        "Display Name",
        validators=[
            Optional(),
            Length(
                min=2, max=50, message="Display name must be between 2 and 50 characters"
            ),
        ],
    )
    location = StringField("Location", validators=[Optional(), Length(max=100)])

    def __init__(self, original_email, *args, **kwargs):
        super(ProfileForm, self).__init__(*args, **kwargs)
        self.original_email = original_email

    def validate_email(self, email):
        if email.data and email.data != self.original_email:
            participant = Participant.query.filter_by(email=email.data).first()
            if participant:
                raise ValidationError(
                    "Email already registered. Please use a different email."
                )


class DependentForm(FlaskForm):
    display_name = StringField(
        "Name",
        validators=[
            DataRequired(),
            Length(min=2, max=50, message="Name must be between 2 and 50 characters"),
        ],
    )


class AdminCreateParticipantForm(FlaskForm):
    display_name = StringField(
        "Display Name", validators=[DataRequired(), Length(min=2, max=50)]
    )
    email = StringField("Email", validators=[Optional(), Email()])
    password = PasswordField("Password", validators=[Optional(), Length(min=6)])
