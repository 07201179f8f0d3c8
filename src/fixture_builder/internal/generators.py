from __future__ import annotations

import ipaddress
import re
import threading
import uuid
from abc import abstractmethod
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from faker import Faker

from fixture_builder.contracts import BuildChain, ExecuteStrategy, ValueGenerator
from fixture_builder.internal.reflection import public_properties, runtime_class, unwrap_optional
from fixture_builder.model.members import reference_name, target_type

_GENDERS = ("Male", "Female")

# country name -> Faker locale used for its states, cities and post codes
COUNTRY_LOCALES: dict[str, str] = {
    "Australia": "en_AU",
    "Canada": "en_CA",
    "United States": "en_US",
}
DEFAULT_LOCALE = "en_US"

_fakers = threading.local()


def faker_for(execute_strategy: ExecuteStrategy, locale: str = DEFAULT_LOCALE) -> Faker:
    """
    A Faker for ``locale``, reseeded from the configuration's random source so that
    a seeded configuration builds the same data every time.

    Instances are cached per thread and per locale.
    """
    cache: dict[str, Faker] | None = getattr(_fakers, "by_locale", None)
    if cache is None:
        cache = _fakers.by_locale = {}
    fake = cache.get(locale)
    if fake is None:
        fake = cache[locale] = Faker(locale)
    fake.seed_instance(execute_strategy.configuration.random.getrandbits(32))
    return fake


def context_value(context: Any, expression: str | re.Pattern[str]) -> Any:
    """
    Value of the first attribute of ``context`` whose name matches ``expression``
    (case-insensitive search) and whose value is not None.

    Used by generators that derive a value from siblings already built on the
    instance, or the constructor parameters, currently being built.
    """
    if context is None:
        return None
    pattern = re.compile(expression, re.IGNORECASE) if isinstance(expression, str) else expression
    names: dict[str, None] = {}
    for prop in public_properties(type(context)):
        names[prop.name] = None
    for name in getattr(context, "__dict__", {}):
        if not name.startswith("_"):
            names[name] = None
    for name in names:
        if pattern.search(name) is None:
            continue
        value = getattr(context, name, None)
        if value is not None:
            return value
    return None


class ValueGeneratorBase(ValueGenerator):
    def generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        if execute_strategy is None:
            raise ValueError("execute_strategy must not be None")
        if target is None:
            raise ValueError("target must not be None")
        return self._generate(execute_strategy, target)

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        raise NotImplementedError


class ValueGeneratorMatcher(ValueGeneratorBase):
    """
    Matches targets by type and, optionally, by reference name.

    ``names`` compare case-insensitively; ``expression`` is searched
    case-insensitively. Name matching never matches a bare type request.
    """

    def __init__(
        self,
        *types: Any,
        names: Iterable[str] = (),
        expression: str | None = None,
    ) -> None:
        self._types = tuple(types)
        self._names = frozenset(n.lower() for n in names)
        self._pattern = re.compile(expression, re.IGNORECASE) if expression else None

    def is_match(self, build_chain: BuildChain, target: Any) -> bool:
        if target is None:
            raise ValueError("target must not be None")
        requested = unwrap_optional(target_type(target))
        if self._types and requested not in self._types:
            return False
        if not self._names and self._pattern is None:
            return True
        name = reference_name(target)
        if name is None:
            return False
        if self._names and name.lower() in self._names:
            return True
        return self._pattern is not None and self._pattern.search(name) is not None


# -------------------------
# type based
# -------------------------


class BooleanValueGenerator(ValueGeneratorMatcher):
    def __init__(self) -> None:
        super().__init__(bool)

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        return execute_strategy.configuration.random.random() < 0.5


class NumericValueGenerator(ValueGeneratorMatcher):
    def __init__(self, minimum: int = 1, maximum: int = 1000) -> None:
        super().__init__(int, float, Decimal)
        self.minimum = minimum
        self.maximum = maximum

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        rng = execute_strategy.configuration.random
        requested = unwrap_optional(target_type(target))
        if requested is int:
            return rng.randint(self.minimum, self.maximum)
        value = round(rng.uniform(self.minimum, self.maximum), 2)
        return Decimal(str(value)) if requested is Decimal else value


class StringValueGenerator(ValueGeneratorMatcher):
    def __init__(self) -> None:
        super().__init__(str)

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        return str(uuid.UUID(int=execute_strategy.configuration.random.getrandbits(128), version=4))


class BytesValueGenerator(ValueGeneratorMatcher):
    def __init__(self, length: int = 16) -> None:
        super().__init__(bytes)
        self.length = length

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        return execute_strategy.configuration.random.randbytes(self.length)


class UuidValueGenerator(ValueGeneratorMatcher):
    def __init__(self) -> None:
        super().__init__(uuid.UUID)

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        return uuid.UUID(int=execute_strategy.configuration.random.getrandbits(128), version=4)


class DateTimeValueGenerator(ValueGeneratorMatcher):
    """
    Dates and times within a year either side of now.
    """

    def __init__(self) -> None:
        super().__init__(datetime, date, time, timedelta)

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        rng = execute_strategy.configuration.random
        offset = timedelta(seconds=rng.randint(-365 * 86400, 365 * 86400))
        requested = unwrap_optional(target_type(target))
        if requested is timedelta:
            return abs(offset)
        moment = datetime.now(timezone.utc) + offset
        if requested is date:
            return moment.date()
        if requested is time:
            return moment.time().replace(microsecond=0)
        return moment


class EnumValueGenerator(ValueGeneratorBase):
    def is_match(self, build_chain: BuildChain, target: Any) -> bool:
        cls = runtime_class(target_type(target))
        return cls is not None and issubclass(cls, Enum)

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        members = list(unwrap_optional(target_type(target)))
        if not members:
            return None
        return execute_strategy.configuration.random.choice(members)


# -------------------------
# name based
# -------------------------


class RelativeValueGenerator(ValueGeneratorMatcher):
    """
    Name-matched string generator that may read sibling values from the instance
    currently being built.
    """

    priority = 1000

    def __init__(self, expression: str, *types: Any) -> None:
        super().__init__(*(types or (str,)), expression=expression)

    @staticmethod
    def _context(execute_strategy: ExecuteStrategy) -> Any:
        return execute_strategy.build_chain.first

    @staticmethod
    def _is_female(gender: Any) -> bool:
        if isinstance(gender, Enum):
            gender = gender.name
        return isinstance(gender, str) and gender.strip().lower().startswith("f")

    @staticmethod
    def _is_male(gender: Any) -> bool:
        if isinstance(gender, Enum):
            gender = gender.name
        return isinstance(gender, str) and gender.strip().lower().startswith("m")


class GenderValueGenerator(RelativeValueGenerator):
    def __init__(self) -> None:
        super().__init__("Gender|Sex")

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        return execute_strategy.configuration.random.choice(_GENDERS)


class FirstNameValueGenerator(RelativeValueGenerator):
    def __init__(self, expression: str = "(Given|First)[_]?Name") -> None:
        super().__init__(expression)

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        gender = context_value(self._context(execute_strategy), "Gender|Sex")
        fake = faker_for(execute_strategy)
        if self._is_female(gender):
            return fake.first_name_female()
        if self._is_male(gender):
            return fake.first_name_male()
        return fake.first_name()


class MiddleNameValueGenerator(FirstNameValueGenerator):
    def __init__(self) -> None:
        super().__init__("Middle[_]?Name")


class LastNameValueGenerator(RelativeValueGenerator):
    def __init__(self) -> None:
        super().__init__("Surname|(Last[_]?Name)")

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        return faker_for(execute_strategy).last_name()


class DomainValueGenerator(RelativeValueGenerator):
    def __init__(self) -> None:
        super().__init__("Domain")

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        return faker_for(execute_strategy).domain_name()


class EmailValueGenerator(RelativeValueGenerator):
    """
    ``first.last@domain`` built from the first name, last name and domain already
    present on the context, falling back to generated values.
    """

    def __init__(self) -> None:
        super().__init__("Email")

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        fake = faker_for(execute_strategy)
        context = self._context(execute_strategy)
        first = context_value(context, "(Given|First)[_]?Name") or fake.first_name()
        last = context_value(context, "Surname|(Last[_]?Name)") or fake.last_name()
        domain = context_value(context, "Domain") or fake.domain_name()
        return f"{first}.{last}@{domain}".replace(" ", "").lower()


class PhoneValueGenerator(RelativeValueGenerator):
    def __init__(self) -> None:
        super().__init__("Phone|Mobile|Cell|Fax")

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        country = context_value(self._context(execute_strategy), "Country")
        locale = COUNTRY_LOCALES.get(country, DEFAULT_LOCALE)
        return faker_for(execute_strategy, locale).phone_number()


class CompanyValueGenerator(RelativeValueGenerator):
    def __init__(self) -> None:
        super().__init__("Company|Employer|Organi[sz]ation")

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        return faker_for(execute_strategy).company()


class UriValueGenerator(RelativeValueGenerator):
    def __init__(self) -> None:
        super().__init__("Ur[il]$|Web[_]?site|Link")

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        return faker_for(execute_strategy).url()


class IpAddressValueGenerator(RelativeValueGenerator):
    """
    ``IPv4Address`` and ``IPv6Address`` targets of any name, and strings named like
    an IP address.
    """

    def __init__(self) -> None:
        super().__init__("^Ip(v[46])?[_]?(Address)?$")

    def is_match(self, build_chain: BuildChain, target: Any) -> bool:
        if target is None:
            raise ValueError("target must not be None")
        if unwrap_optional(target_type(target)) in (ipaddress.IPv4Address, ipaddress.IPv6Address):
            return True
        return super().is_match(build_chain, target)

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        fake = faker_for(execute_strategy)
        requested = unwrap_optional(target_type(target))
        if requested is ipaddress.IPv6Address:
            return ipaddress.IPv6Address(fake.ipv6())
        if requested is ipaddress.IPv4Address:
            return ipaddress.IPv4Address(fake.ipv4())
        return fake.ipv4()


class TimeZoneValueGenerator(RelativeValueGenerator):
    def __init__(self) -> None:
        super().__init__("Time[_]?Zone|^tz$")

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        return faker_for(execute_strategy).timezone()


class CultureValueGenerator(RelativeValueGenerator):
    def __init__(self) -> None:
        super().__init__("Culture|Locale")

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        return faker_for(execute_strategy).locale()


class AddressValueGenerator(RelativeValueGenerator):
    def __init__(self) -> None:
        super().__init__("Address|Street")

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        return faker_for(execute_strategy).street_address()


class _LocationValueGenerator(RelativeValueGenerator):
    """
    Location parts come from the Faker locale of the country already on the
    context, or the default locale when there is none.
    """

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        country = context_value(self._context(execute_strategy), "Country")
        locale = COUNTRY_LOCALES.get(country, DEFAULT_LOCALE)
        return self._location(faker_for(execute_strategy, locale))

    @abstractmethod
    def _location(self, fake: Faker) -> str:
        raise NotImplementedError


class CountryValueGenerator(RelativeValueGenerator):
    def __init__(self) -> None:
        super().__init__("Country")

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        return faker_for(execute_strategy).random_element(sorted(COUNTRY_LOCALES))


class StateValueGenerator(_LocationValueGenerator):
    def __init__(self) -> None:
        super().__init__("State|Region|Province")

    def _location(self, fake: Faker) -> str:
        return fake.administrative_unit()


class CityValueGenerator(_LocationValueGenerator):
    def __init__(self) -> None:
        super().__init__("City")

    def _location(self, fake: Faker) -> str:
        return fake.city()


class PostCodeValueGenerator(_LocationValueGenerator):
    def __init__(self) -> None:
        super().__init__("Post[_]?Code|Zip[_]?(Code)?")

    def _location(self, fake: Faker) -> str:
        return fake.postcode()


class AgeValueGenerator(RelativeValueGenerator):
    def __init__(self) -> None:
        super().__init__("^Age$", int)

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        born = context_value(self._context(execute_strategy), "dob|date[_]?of[_]?birth|born")
        if isinstance(born, date):
            born = born.date() if isinstance(born, datetime) else born
            today = date.today()
            return today.year - born.year - ((today.month, today.day) < (born.month, born.day))
        return execute_strategy.configuration.random.randint(1, 100)


class DateOfBirthValueGenerator(RelativeValueGenerator):
    def __init__(self) -> None:
        super().__init__("dob|date[_]?of[_]?birth|born", date, datetime)

    def _generate(self, execute_strategy: ExecuteStrategy, target: Any) -> Any:
        rng = execute_strategy.configuration.random
        age = context_value(self._context(execute_strategy), "^Age$")
        if not isinstance(age, int) or isinstance(age, bool):
            age = rng.randint(1, 100)
        born = date.today() - timedelta(days=age * 365 + rng.randint(0, 364))
        if unwrap_optional(target_type(target)) is datetime:
            return datetime.combine(born, time(), tzinfo=timezone.utc)
        return born


def default_value_generators() -> list[ValueGenerator]:
    return [
        BooleanValueGenerator(),
        NumericValueGenerator(),
        StringValueGenerator(),
        BytesValueGenerator(),
        UuidValueGenerator(),
        DateTimeValueGenerator(),
        EnumValueGenerator(),
        GenderValueGenerator(),
        FirstNameValueGenerator(),
        MiddleNameValueGenerator(),
        LastNameValueGenerator(),
        DomainValueGenerator(),
        EmailValueGenerator(),
        IpAddressValueGenerator(),
        UriValueGenerator(),
        AddressValueGenerator(),
        PhoneValueGenerator(),
        CompanyValueGenerator(),
        TimeZoneValueGenerator(),
        CultureValueGenerator(),
        CountryValueGenerator(),
        StateValueGenerator(),
        CityValueGenerator(),
        PostCodeValueGenerator(),
        AgeValueGenerator(),
        DateOfBirthValueGenerator(),
    ]
