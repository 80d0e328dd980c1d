import pytest
from pydantic import ValidationError

from clinic.core.settings import Env, Settings


def test_production_rejects_default_jwt_secret():
    with pytest.raises(ValidationError, match="JWT_SECRET"):
        Settings(APP_ENV="prod", JWT_SECRET="change-me")


def test_production_with_secret():
    s = Settings(APP_ENV="prod", JWT_SECRET="a-real-secret")
    assert s.APP_ENV is Env.PROD


@pytest.mark.parametrize("week_start", [-1, 7])
def test_week_start_must_be_a_weekday(week_start):
    with pytest.raises(ValidationError):
        Settings(ANALYTICS_WEEK_START=week_start)


def test_currency_code_length():
    with pytest.raises(ValidationError):
        Settings(DEFAULT_CURRENCY="EURO")
