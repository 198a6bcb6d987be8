from __future__ import annotations

from datetime import datetime, timezone

from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import DecimalField, Field, IntegerField, StringField
from wtforms.validators import InputRequired, Length, NumberRange, Optional, StopValidation

from .errors import ValidationError


def parse_iso_datetime(value) -> datetime:
    """ISO 8601 -> aware UTC datetime. Naive input is taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _text(value):
    return str(value).strip() if value is not None else value


def _currency_code(value):
    return _text(value).upper() if value else value


def not_blank(form, field):
    """Optional key, but when sent it must carry text."""
    if field.raw_data and not field.data:
        raise StopValidation("This field cannot be blank.")


def json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def json_formdata(body: dict | None = None) -> MultiDict:
    """
    The JSON body as form data. Lists become repeated keys; nulls are
    dropped so they read as "not supplied".
    """
    if body is None:
        body = json_body()
    return MultiDict({k: v for k, v in body.items() if v is not None})


class IsoDateTimeField(Field):
    def process_formdata(self, valuelist):
        if not valuelist:
            return
        try:
            self.data = parse_iso_datetime(valuelist[0])
        except (TypeError, ValueError) as e:
            self.data = None
            raise ValueError("Not a valid ISO 8601 date.") from e


class IdListField(Field):
    def process_formdata(self, valuelist):
        try:
            self.data = [int(v) for v in valuelist]
        except (TypeError, ValueError) as e:
            self.data = []
            raise ValueError("Ids must be integers.") from e


class ApiForm(FlaskForm):
    class Meta:
        # Bearer-token API; there is no cookie session to protect.
        csrf = False

    def __init__(self, *args, **kwargs):
        body = json_body() if "formdata" not in kwargs else {}
        kwargs.setdefault("formdata", json_formdata(body))
        super().__init__(*args, **kwargs)
        # keys sent as an explicit null
        self.null_keys = {key for key, value in body.items() if value is None}

    def validated(self):
        if not self.validate():
            # report errors under the JSON key the client sent
            errors = {field.short_name: field.errors for field in self if field.errors}
            raise ValidationError("Invalid request body", details=errors)
        return self


class EventCreateForm(ApiForm):
    title = StringField(name="title", filters=[_text], validators=[InputRequired(), Length(min=1, max=100)])
    draw_date = IsoDateTimeField(name="drawDate", validators=[InputRequired()])
    exchange_date = IsoDateTimeField(name="exchangeDate", validators=[InputRequired()])
    budget = DecimalField(name="budget", validators=[Optional(), NumberRange(min=0, max=100000)])
    currency = StringField(name="currency", filters=[_currency_code], validators=[Optional(), Length(max=10)])
    participant_ids = IdListField(name="participantIds")


class EventUpdateForm(ApiForm):
    title = StringField(name="title", filters=[_text], validators=[not_blank, Optional(), Length(max=100)])
    draw_date = IsoDateTimeField(name="drawDate", validators=[Optional()])
    exchange_date = IsoDateTimeField(name="exchangeDate", validators=[Optional()])
    budget = DecimalField(name="budget", validators=[Optional(), NumberRange(min=0, max=100000)])
    currency = StringField(name="currency", filters=[_currency_code], validators=[Optional(), Length(max=10)])

    # null clears these; for the rest null means "leave as is"
    CLEARABLE = ("budget",)

    def changes(self) -> dict:
        changed = {name: field.data for name, field in self._fields.items() if field.raw_data}
        for name in self.CLEARABLE:
            if self[name].short_name in self.null_keys:
                changed[name] = None
        return changed


class InviteForm(ApiForm):
    user_id = IntegerField(name="userId", validators=[InputRequired()])


class ProfileForm(ApiForm):
    username = StringField(name="username", filters=[_text], validators=[InputRequired(), Length(min=3, max=50)])
    first_name = StringField(name="firstName", filters=[_text], validators=[Optional(), Length(max=100)])
    last_name = StringField(name="lastName", filters=[_text], validators=[Optional(), Length(max=100)])
    avatar = StringField(name="avatar", filters=[_text], validators=[Optional(), Length(max=500)])
