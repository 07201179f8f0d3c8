from __future__ import annotations

# ==============================================================================
# BRANCH LEDGER: generators.py
# ==============================================================================
#
# M001 context_value: None context; properties and instance attributes; None values skipped
# C001 ValueGeneratorMatcher.is_match: type filter; names and expression need a member name
# C002 type based generators: bool, numeric, str, bytes, uuid, date/time, enum
# C003 relative generators: read gender, names, domain, country, age, date of birth
#      from the current build context; fall back to Faker values
# C004 faker_for: reseeded from the configured random source; locale follows the context country
# C005 default generator order: the first matching name wins on equal priority
# ==============================================================================

import ipaddress
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from random import Random

import pytest

from fixture_builder.internal import generators as gen
from fixture_builder.internal.execution import DefaultExecuteStrategy
from fixture_builder.internal.history import BuildHistory
from fixture_builder.model.members import ParameterTarget, PropertyTarget
from unit.helpers.models_helper import Gender, Person, empty_configuration


@dataclass
class _Context:
    first_name: str | None = None
    last_name: str | None = None
    domain: str | None = None
    gender: str | None = None
    country: str | None = None
    city: str | None = None
    age: int | None = None
    dob: date | None = None


def _strategy(context: object | None = None) -> DefaultExecuteStrategy:
    strategy = DefaultExecuteStrategy(empty_configuration(random=Random(7)))
    if context is not None:
        strategy.build_chain.push(context)
    return strategy


def _prop(name: str, tp=str) -> PropertyTarget:
    return PropertyTarget(name, tp, Person, Person)


# -------------------------
# context_value
# -------------------------


def test_context_value_reads_first_matching_non_none_attribute():
    context = _Context(first_name=None, last_name="Doe")
    context.extra_name = "dynamic"

    assert gen.context_value(context, "last") == "Doe"
    assert gen.context_value(context, "first") is None
    assert gen.context_value(context, "extra") == "dynamic"
    assert gen.context_value(None, "anything") is None


# -------------------------
# matcher
# -------------------------


MATCHER_CASES: list[dict[str, object]] = [
    {"id": "type_only_bare_type", "matcher": lambda: gen.ValueGeneratorMatcher(str), "target": str, "expected": True},
    {"id": "type_only_optional", "matcher": lambda: gen.ValueGeneratorMatcher(str), "target": str | None, "expected": True},
    {"id": "type_only_wrong_type", "matcher": lambda: gen.ValueGeneratorMatcher(str), "target": int, "expected": False},
    {"id": "names_member", "matcher": lambda: gen.ValueGeneratorMatcher(str, names=["Email"]), "target": _prop("email"), "expected": True},
    {"id": "names_bare_type", "matcher": lambda: gen.ValueGeneratorMatcher(str, names=["Email"]), "target": str, "expected": False},
    {"id": "names_other_member", "matcher": lambda: gen.ValueGeneratorMatcher(str, names=["Email"]), "target": _prop("mail"), "expected": False},
    {"id": "expression_search", "matcher": lambda: gen.ValueGeneratorMatcher(str, expression="Email"), "target": _prop("work_email_address"), "expected": True},
    {"id": "expression_wrong_type", "matcher": lambda: gen.ValueGeneratorMatcher(str, expression="Email"), "target": _prop("email", int), "expected": False},
    {"id": "any_type_by_name", "matcher": lambda: gen.ValueGeneratorMatcher(expression="Email"), "target": ParameterTarget("email", bytes, Person, 0), "expected": True},
]


@pytest.mark.parametrize("case", [pytest.param(c, id=c["id"]) for c in MATCHER_CASES])
def test_matcher(case):
    assert case["matcher"]().is_match(BuildHistory(), case["target"]) is case["expected"]


def test_anchored_age_expression():
    generator = gen.AgeValueGenerator()

    assert generator.is_match(BuildHistory(), _prop("age", int))
    assert generator.is_match(BuildHistory(), _prop("Age", int | None))
    assert not generator.is_match(BuildHistory(), _prop("page", int))
    assert not generator.is_match(BuildHistory(), _prop("age", str))


def test_generate_rejects_none():
    with pytest.raises(ValueError):
        gen.StringValueGenerator().generate(None, str)
    with pytest.raises(ValueError):
        gen.StringValueGenerator().generate(_strategy(), None)


# -------------------------
# type based
# -------------------------


@pytest.mark.parametrize(
    "generator, target, check",
    [
        pytest.param(gen.BooleanValueGenerator(), bool, lambda v: isinstance(v, bool), id="bool"),
        pytest.param(gen.NumericValueGenerator(), int, lambda v: type(v) is int and 1 <= v <= 1000, id="int"),
        pytest.param(gen.NumericValueGenerator(), float | None, lambda v: type(v) is float, id="optional_float"),
        pytest.param(gen.NumericValueGenerator(), Decimal, lambda v: isinstance(v, Decimal), id="decimal"),
        pytest.param(gen.StringValueGenerator(), str, lambda v: uuid.UUID(v).version == 4, id="str"),
        pytest.param(gen.BytesValueGenerator(8), bytes, lambda v: isinstance(v, bytes) and len(v) == 8, id="bytes"),
        pytest.param(gen.UuidValueGenerator(), uuid.UUID, lambda v: v.version == 4, id="uuid"),
        pytest.param(gen.DateTimeValueGenerator(), datetime, lambda v: v.tzinfo is not None, id="datetime"),
        pytest.param(gen.DateTimeValueGenerator(), date, lambda v: type(v) is date, id="date"),
        pytest.param(gen.DateTimeValueGenerator(), time, lambda v: isinstance(v, time), id="time"),
        pytest.param(gen.DateTimeValueGenerator(), timedelta, lambda v: v >= timedelta(), id="timedelta"),
        pytest.param(gen.EnumValueGenerator(), Gender | None, lambda v: v in Gender, id="enum"),
    ],
)
def test_type_based_generators(generator, target, check):
    assert generator.is_match(BuildHistory(), target)
    assert check(generator.generate(_strategy(), target))


def test_generators_use_the_configured_random_source():
    first = gen.StringValueGenerator().generate(_strategy(), str)
    second = gen.StringValueGenerator().generate(_strategy(), str)

    assert first == second


# -------------------------
# relative generators
# -------------------------


def test_relative_generators_outrank_type_generators():
    assert gen.EmailValueGenerator().priority > gen.StringValueGenerator().priority


def test_email_is_built_from_context():
    strategy = _strategy(_Context(first_name="Jane", last_name="Van Doe", domain="example.com"))

    email = gen.EmailValueGenerator().generate(strategy, _prop("email"))

    assert email == "jane.vandoe@example.com"


def test_email_without_context_is_still_an_address():
    email = gen.EmailValueGenerator().generate(_strategy(), _prop("email"))

    local, _, domain = email.partition("@")
    assert "." in local
    assert "." in domain


def test_faker_is_reseeded_from_the_configured_random_source():
    first = gen.faker_for(_strategy()).last_name()
    second = gen.faker_for(_strategy()).last_name()

    assert first == second


@pytest.mark.parametrize(
    "gender, produce",
    [
        pytest.param("Female", lambda fake: fake.first_name_female(), id="female"),
        pytest.param(Gender.MALE, lambda fake: fake.first_name_male(), id="male_enum"),
        pytest.param(None, lambda fake: fake.first_name(), id="unknown"),
    ],
)
def test_first_name_follows_gender(gender, produce):
    strategy = _strategy(_Context(gender=gender))

    expected = produce(gen.faker_for(_strategy()))

    assert gen.FirstNameValueGenerator().generate(strategy, _prop("first_name")) == expected


def test_middle_name_matches_its_own_names_only():
    generator = gen.MiddleNameValueGenerator()

    assert generator.is_match(BuildHistory(), _prop("middle_name"))
    assert not generator.is_match(BuildHistory(), _prop("first_name"))


@pytest.mark.parametrize(
    "generator, country, locale, produce",
    [
        pytest.param(gen.CityValueGenerator(), "Canada", "en_CA", lambda fake: fake.city(), id="city_from_country"),
        pytest.param(gen.PostCodeValueGenerator(), "Australia", "en_AU", lambda fake: fake.postcode(), id="post_code_from_country"),
        pytest.param(gen.StateValueGenerator(), None, "en_US", lambda fake: fake.administrative_unit(), id="state_default_locale"),
        pytest.param(gen.CityValueGenerator(), "Atlantis", "en_US", lambda fake: fake.city(), id="unknown_country"),
    ],
)
def test_locations_follow_the_country_in_context(generator, country, locale, produce):
    expected = produce(gen.faker_for(_strategy(), locale))

    value = generator.generate(_strategy(_Context(country=country)), _prop("location"))

    assert value == expected


def test_country_has_a_known_locale():
    country = gen.CountryValueGenerator().generate(_strategy(), _prop("country"))

    assert country in gen.COUNTRY_LOCALES


@pytest.mark.parametrize(
    "name, generator",
    [
        pytest.param("work_email_address", gen.EmailValueGenerator, id="email_address"),
        pytest.param("ip_address", gen.IpAddressValueGenerator, id="ip_address"),
        pytest.param("website_url", gen.UriValueGenerator, id="website"),
        pytest.param("company_address", gen.AddressValueGenerator, id="company_address"),
        pytest.param("mobile_phone", gen.PhoneValueGenerator, id="phone"),
        pytest.param("employer", gen.CompanyValueGenerator, id="company"),
        pytest.param("time_zone", gen.TimeZoneValueGenerator, id="time_zone"),
        pytest.param("culture", gen.CultureValueGenerator, id="culture"),
        pytest.param("province", gen.StateValueGenerator, id="province"),
    ],
)
def test_first_matching_default_generator(name, generator):
    matching = [g for g in gen.default_value_generators() if g.priority == 1000 and g.is_match(BuildHistory(), _prop(name))]

    assert type(matching[0]) is generator


@pytest.mark.parametrize(
    "generator, target, check",
    [
        pytest.param(gen.IpAddressValueGenerator(), _prop("ip"), lambda v: isinstance(ipaddress.ip_address(v), ipaddress.IPv4Address), id="ip_string"),
        pytest.param(gen.IpAddressValueGenerator(), ipaddress.IPv4Address, lambda v: type(v) is ipaddress.IPv4Address, id="ipv4"),
        pytest.param(gen.IpAddressValueGenerator(), _prop("host", ipaddress.IPv6Address | None), lambda v: type(v) is ipaddress.IPv6Address, id="ipv6_member"),
        pytest.param(gen.UriValueGenerator(), _prop("url"), lambda v: v.startswith(("http://", "https://")), id="url"),
        pytest.param(gen.PhoneValueGenerator(), _prop("phone"), lambda v: isinstance(v, str) and v, id="phone"),
        pytest.param(gen.CompanyValueGenerator(), _prop("company"), lambda v: isinstance(v, str) and v, id="company"),
        pytest.param(gen.TimeZoneValueGenerator(), _prop("tz"), lambda v: isinstance(v, str) and v, id="time_zone"),
        pytest.param(gen.CultureValueGenerator(), _prop("locale"), lambda v: isinstance(v, str) and v, id="culture"),
        pytest.param(gen.AddressValueGenerator(), _prop("street"), lambda v: isinstance(v, str) and v, id="street"),
    ],
)
def test_faker_backed_generators(generator, target, check):
    assert generator.is_match(BuildHistory(), target)
    assert check(generator.generate(_strategy(), target))


def test_age_is_derived_from_date_of_birth():
    born = date(1990, 6, 15)
    today = date.today()
    expected = today.year - born.year - ((today.month, today.day) < (born.month, born.day))

    age = gen.AgeValueGenerator().generate(_strategy(_Context(dob=born)), _prop("age", int))

    assert age == expected


def test_date_of_birth_is_derived_from_age():
    born = gen.DateOfBirthValueGenerator().generate(_strategy(_Context(age=30)), _prop("dob", date))

    assert type(born) is date
    assert 29 <= date.today().year - born.year <= 31


def test_date_of_birth_as_datetime():
    born = gen.DateOfBirthValueGenerator().generate(_strategy(), _prop("date_of_birth", datetime))

    assert isinstance(born, datetime)
    assert born.tzinfo is not None


def test_default_value_generators_are_fresh_instances():
    first = gen.default_value_generators()
    second = gen.default_value_generators()

    assert [type(g) for g in first] == [type(g) for g in second]
    assert all(a is not b for a, b in zip(first, second))
