from flask_wtf import FlaskForm
from wtforms import BooleanField, DateTimeField, SelectField, StringField
from wtforms.validators import DataRequired, Length, Optional, ValidationError

from confidence_pool.forms.pools import DATETIME_FORMATS
from confidence_pool.models.game import ROUNDS

ROUND_CHOICES = [(r, r) for r in ROUNDS]


class GameForm(FlaskForm):
    round = SelectField("Round", choices=ROUND_CHOICES, validators=[DataRequired()])
    game_title = StringField("Game Title", validators=[Optional(), Length(max=150)])
    home_team = StringField(
        "Home Team", validators=[DataRequired(), Length(min=2, max=100)]
    )
    away_team = StringField(
        "Away Team", validators=[DataRequired(), Length(min=2, max=100)]
    )
    game_time = DateTimeField(
        "Kickoff", format=DATETIME_FORMATS, validators=[DataRequired()]
    )
    tv_network = StringField("TV Network", validators=[Optional(), Length(max=50)])

    def validate_away_team(self, away_team):
        if (
            self.home_team.data
            and away_team.data
            and away_team.data.strip().lower() == self.home_team.data.strip().lower()
        ):
            raise ValidationError("Home and away teams must be different")


class GameUpdateForm(FlaskForm):
    round = SelectField(
        "Round", choices=ROUND_CHOICES, validators=[Optional()], validate_choice=False
    )
    game_title = StringField("Game Title", validators=[Optional(), Length(max=150)])
    home_team = StringField("Home Team", validators=[Optional(), Length(min=2, max=100)])
    away_team = StringField("Away Team", validators=[Optional(), Length(min=2, max=100)])
    game_time = DateTimeField("Kickoff", format=DATETIME_FORMATS, validators=[Optional()])
    tv_network = StringField("TV Network", validators=[Optional(), Length(max=50)])

    def validate_round(self, round):
        if round.data and round.data not in ROUNDS:
            raise ValidationError(f"Round must be one of: {', '.join(ROUNDS)}")


class GameResultForm(FlaskForm):
    winner = StringField("Winner", validators=[Optional(), Length(max=100)])
    is_complete = BooleanField("Final", default=True)
