from flask_wtf import FlaskForm
from wtforms import BooleanField, DateTimeField, FloatField, IntegerField, StringField
from wtforms.validators import DataRequired, Length, NumberRange, Optional

# ISO strings from the JSON API, plus the plain form formats
DATETIME_FORMATS = [
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
]


class CreatePoolForm(FlaskForm):
    name = StringField(
        "Pool Name",
        validators=[
            DataRequired(),
            Length(
                min=3, max=100, message="Pool name must be between 3 and 100 characters"
            ),
        ],
    )
    start_date = DateTimeField(
        "Start Date", format=DATETIME_FORMATS, validators=[DataRequired()]
    )
    end_date = DateTimeField(
        "End Date", format=DATETIME_FORMATS, validators=[DataRequired()]
    )
    total_games = IntegerField(
        "Total Games",
        validators=[
            Optional(),
            NumberRange(min=1, max=50, message="Total games must be between 1 and 50"),
        ],
    )
    entry_fee = FloatField("Entry Fee", validators=[Optional(), NumberRange(min=0)])


class PoolSettingsForm(FlaskForm):
    """Admin settings update; every field is optional"""

    name = StringField("Pool Name", validators=[Optional(), Length(min=3, max=100)])
    start_date = DateTimeField(
        "Start Date", format=DATETIME_FORMATS, validators=[Optional()]
    )
    end_date = DateTimeField("End Date", format=DATETIME_FORMATS, validators=[Optional()])
    total_games = IntegerField(
        "Total Games", validators=[Optional(), NumberRange(min=1, max=50)]
    )
    entry_fee = FloatField("Entry Fee", validators=[Optional(), NumberRange(min=0)])
    is_active = BooleanField("Active Pool")
