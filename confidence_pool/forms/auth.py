from flask_wtf import FlaskForm
from wtforms import BooleanField, PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length, ValidationError

from confidence_pool.models import Participant


class LoginForm(FlaskForm):
    login = StringField(
        "Email or Username", validators=[DataRequired(), Length(max=120)]
    )
    password = PasswordField("Password", validators=[DataRequired()])
    remember_me = BooleanField("Remember Me")


class RegistrationForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Email()])
    display_name = StringField(
        "Display Name",
        validators=[
            DataRequired(),
            Length(
                min=2, max=50, message="Display name must be between 2 and 50 characters"
            ),
        ],
    )
    password = PasswordField(
        "Password",
        validators=[
            DataRequired(),
            Length(min=6, message="Password must be at least 6 characters long"),
        ],
    )

    def validate_email(self, email):
        participant = Participant.query.filter_by(email=email.data.strip()).first()
        if participant:
            raise ValidationError(
                "Email already registered. Please use a different email."
            )
