from __future__ import annotations

from typing import Any, Dict, Optional
from decimal import Decimal, InvalidOperation
import logging
import re

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger("OSAD.data.recalculator")

_CURRENCY_RE = re.compile(r"UGX\s?", re.IGNORECASE)

BALANCE_INPUTS = ("route_fare", "student_discount", "amount_paid")
ZERO = Decimal(0)


def parse_amount(value: Any) -> Decimal:
    """
    Parse a user- or backend-supplied amount.

    Accepts numbers and strings such as "50000", "UGX 50,000" or " 12.5 ".
    Anything that does not parse to a finite number is treated as 0.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, int):
        number = Decimal(value)
    elif isinstance(value, float):
        # str() keeps the short repr, so 0.1 stays 0.1 and not its binary expansion.
        number = Decimal(str(value))
    else:
        text = _CURRENCY_RE.sub("", str(value)).replace(",", "").strip()
        try:
            number = Decimal(text)
        except InvalidOperation:
            return ZERO
    if not number.is_finite():
        return ZERO
    return number


def recalculate_balance(fare: Any, discount: Any, paid: Any) -> Decimal:
    """balance = max(0, fare - discount - paid), exact to the cent."""
    return max(ZERO, parse_amount(fare) - parse_amount(discount) - parse_amount(paid))


def format_amount(value: Any) -> str:
    """Plain numeric string for the wire: 45000 -> "45000", 12.50 -> "12.5"."""
    number = parse_amount(value)
    if number == number.to_integral_value():
        return str(int(number))
    return format(number.normalize(), "f")


class TransportRoute(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str
    name: str = ""
    fare: str = "0"
    schedule: str = ""

    @classmethod
    def from_api(cls, row: Dict[str, Any]) -> "TransportRoute":
        """Routes arrive as {routeName, routeFare, dayOfWeek, startTime}."""
        return cls(
            id=str(row.get("id", "")),
            name=str(row.get("routeName") or row.get("name") or ""),
            fare=str(row.get("routeFare") or row.get("fare") or "0"),
            schedule=f"{row.get('dayOfWeek', '')} - {row.get('startTime', '')}",
        )


class TransportRegistration(BaseModel):
    """
    A student's registration on a transport route.

    Numeric inputs are kept as entered; ``balance`` is always derived from
    them and recomputed from scratch on every edit.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        coerce_numbers_to_str=True,
    )

    id: str
    student_id: Optional[str] = None
    route_id: Optional[str] = None
    student_name: str = ""
    student_class: str = ""
    route_name: str = ""
    route_schedule: str = ""
    route_fare: str = "0"
    student_discount: str = "0"
    amount_paid: str = "0"
    balance: str = "0"

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # The backend sends null for amounts it has not computed yet.
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @property
    def balance_amount(self) -> Decimal:
        return recalculate_balance(self.route_fare, self.student_discount, self.amount_paid)

    def recalculate(self) -> "TransportRegistration":
        self.balance = format_amount(self.balance_amount)
        return self

    def apply_edit(self, field: str, value: Any) -> "TransportRegistration":
        """
        Set one form field and return a new registration with a fresh balance.

        ``field`` may be given in snake_case or in the backend's camelCase.
        """
        name = _field_name(field)
        if name not in type(self).model_fields:
            raise ValueError(f"Unknown registration field: {field!r}")
        if name == "balance":
            raise ValueError("balance is derived and cannot be edited")

        updated = self.model_copy(update={name: "" if value is None else str(value)})
        if name in BALANCE_INPUTS:
            updated.recalculate()
        return updated

    def select_route(self, route: TransportRoute) -> "TransportRegistration":
        updated = self.model_copy(
            update={
                "route_id": route.id,
                "route_name": route.name,
                "route_schedule": route.schedule,
                "route_fare": route.fare,
            }
        )
        return updated.recalculate()

    def to_payload(self) -> Dict[str, Any]:
        payload = self.model_dump(by_alias=True)
        for name in BALANCE_INPUTS:
            payload[to_camel(name)] = format_amount(parse_amount(getattr(self, name)))
        payload["balance"] = format_amount(self.balance_amount)
        return payload


def _field_name(field: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", field).lower()
