"""
Data models for the registry workflows.

Inbound values (SearchCriteria, PaymentRequest, RegistryContact) validate
themselves on construction and are frozen afterwards. Outbound values
(SearchOutcome, ScrapedListingRow, ExtractedCorporationRecord) are built once
and serialised with ``to_dict``.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .errors import ValidationError

logger = logging.getLogger(__name__)


ANY_BUSINESS_TYPE = "-- Any type --"

DATE_PATTERN = re.compile(r"^([A-Z][a-z]+) (\d{1,2}), (\d{4})$")


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class _LabelledEnum(Enum):
    """Enum whose value is the wire name and whose label is the page text."""

    @property
    def label(self) -> str:
        return self.value

    @classmethod
    def parse(cls, raw: Any, field_name: str):
        for member in cls:
            if raw == member.value:
                return member
        allowed = ", ".join(repr(m.value) for m in cls)
        raise ValidationError(f"Invalid {field_name} {raw!r}, must be one of {allowed}")


class RegisterType(_LabelledEnum):
    ALL = "All"
    CORPORATIONS = "Corporations"
    BUSINESS_NAMES = "Business Names"
    PARTNERSHIPS = "Partnerships"

    @property
    def label(self) -> str:
        return "-- All Registers --" if self is RegisterType.ALL else self.value


class StatusKey(_LabelledEnum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    ALL = "All"

    @property
    def label(self) -> str:
        return "-- All Statuses --" if self is StatusKey.ALL else self.value


class SearchOperator(_LabelledEnum):
    ON = "On"
    BEFORE = "Before"
    FROM_OR_ON = "From or On"
    BETWEEN = "Between"


class Product(_LabelledEnum):
    PROFILE_REPORT = "Profile Report"
    DOCUMENT_COPIES = "Document Copies"
    CERTIFICATE_OF_STATUS = "Certificate of Status"


# Business types offered by the advanced search for each specific register.
BUSINESS_TYPES: Dict[RegisterType, List[str]] = {
    RegisterType.CORPORATIONS: [
        ANY_BUSINESS_TYPE,
        "Ontario Business Corporation",
        "Ontario Not-For-Profit Corporation",
        "Ontario Co-operative Corporation",
        "Ontario Insurance Corporation",
        "Ontario Corporation Sole",
        "Extra-Provincial Corporation",
        "Extra-Provincial Not-For-Profit Corporation",
        "Extra-Provincial Co-operative Corporation",
        "Extra-Provincial Insurance Corporation",
    ],
    RegisterType.BUSINESS_NAMES: [
        ANY_BUSINESS_TYPE,
        "Sole Proprietorship",
        "General Partnership",
        "Business Name (Corporation)",
        "Business Name (Limited Partnership)",
        "Business Name (Limited Liability Partnership)",
        "Business Name (Other)",
    ],
    RegisterType.PARTNERSHIPS: [
        ANY_BUSINESS_TYPE,
        "Limited Partnership",
        "Limited Liability Partnership",
        "Extra-Provincial Limited Partnership",
        "Extra-Provincial Limited Liability Partnership",
    ],
}


def validate_date(value: Optional[str], field_name: str) -> Optional[str]:
    """Check a 'Month Day, Year' date string, e.g. ``'January 1, 2021'``."""
    if value is None:
        return None
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise ValidationError(
            f"Invalid {field_name} {value!r}, must be 'Month Day, Year' e.g. 'January 1, 2021'"
        )
    return value


# ---------------------------------------------------------------------------
# Inbound values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SearchCriteria:
    """Advanced search form input.

    ``end_date`` only matters when ``search_operator`` is ``BETWEEN``; for the
    other operators it is kept but never typed into the page.
    """

    query_word: str
    register_type: Optional[RegisterType] = None
    business_type: Optional[str] = None
    status: Optional[StatusKey] = None
    registration_date: Optional[str] = None
    search_operator: Optional[SearchOperator] = None
    end_date: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.query_word, str) or not self.query_word.strip():
            raise ValidationError("query_word must be a non-empty string")
        validate_date(self.registration_date, "date_input")
        validate_date(self.end_date, "end_date")

        register_type = self.register_type
        if register_type is not None and register_type is not RegisterType.ALL:
            allowed = BUSINESS_TYPES[register_type]
            if (
                self.business_type is not None
                and self.business_type != ANY_BUSINESS_TYPE
                and self.business_type not in allowed
            ):
                raise ValidationError(
                    f"Invalid business type for register type '{register_type.value}', "
                    f"must be one of {', '.join(allowed)}"
                )

    @property
    def effective_end_date(self) -> Optional[str]:
        """End date as it will be typed, or ``None`` when it does not apply."""
        if self.search_operator is SearchOperator.BETWEEN:
            return self.end_date or ""
        return None

    @classmethod
    def from_dict(cls, data: Any) -> "SearchCriteria":
        """Build criteria from a JSON body using the public wire names."""
        if not isinstance(data, dict):
            raise ValidationError("search criteria must be a JSON object")
        if "query_word" not in data:
            raise ValidationError("missing field 'query_word'")

        def _opt(key, enum_cls):
            raw = data.get(key)
            return None if raw is None else enum_cls.parse(raw, key)

        return cls(
            query_word=data["query_word"],
            register_type=_opt("register_type_key", RegisterType),
            business_type=data.get("business_type_selection"),
            status=_opt("status_key", StatusKey),
            registration_date=data.get("date_input"),
            search_operator=_opt("search_operator", SearchOperator),
            end_date=data.get("end_date"),
        )


@dataclass(frozen=True)
class PaymentRequest:
    """A purchase of one document product for one company."""

    criteria: SearchCriteria
    selected_company: str
    product: Product
    email: str

    def __post_init__(self) -> None:
        if not self.selected_company or not self.selected_company.strip():
            raise ValidationError("selected_company must be a non-empty string")
        if not self.email:
            raise ValidationError("email must not be empty")

    @classmethod
    def from_dict(cls, data: Any, default_email: str) -> "PaymentRequest":
        if not isinstance(data, dict):
            raise ValidationError("payment request must be a JSON object")
        for key in ("search_business_params", "selected_company", "search_product"):
            if key not in data:
                raise ValidationError(f"missing field '{key}'")
        return cls(
            criteria=SearchCriteria.from_dict(data["search_business_params"]),
            selected_company=data["selected_company"],
            product=Product.parse(data["search_product"], "search_product"),
            email=data.get("email") or default_email,
        )


@dataclass(frozen=True)
class RegistryContact:
    """Requester details sent to the registry REST backend."""

    first_name: str
    last_name: str
    phone_number: str
    email: str
    corporate_number: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any, default_email: str) -> "RegistryContact":
        if not isinstance(data, dict):
            raise ValidationError("registry request must be a JSON object")
        for key in ("first_name", "last_name", "phone_number"):
            if not isinstance(data.get(key), str):
                raise ValidationError(f"missing field '{key}'")
        return cls(
            first_name=data["first_name"],
            last_name=data["last_name"],
            phone_number=data["phone_number"],
            email=data.get("email") or default_email,
            corporate_number=data.get("corporate_number"),
        )


# ---------------------------------------------------------------------------
# Search outcome
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SearchOutcome:
    """Either no results, or the URL of the loaded result listing."""

    url: Optional[str] = None
    company_names: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.url is None

    @classmethod
    def no_results(cls) -> "SearchOutcome":
        return cls(url=None)

    @classmethod
    def listed(cls, url: str, company_names: Optional[List[str]] = None) -> "SearchOutcome":
        return cls(url=url, company_names=list(company_names or []))


# ---------------------------------------------------------------------------
# Extracted records
# ---------------------------------------------------------------------------

@dataclass
class ScrapedListingRow:
    """One row of the legacy federal corporation listing."""
    business_name: str
    status: str
    corporation_number: str
    business_number: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "business_name": self.business_name,
            "status": self.status,
            "corporation_number": self.corporation_number,
            "business_number": self.business_number,
        }


@dataclass
class LabeledValue:
    label: str
    value: str

    def to_dict(self) -> Dict[str, str]:
        return {self.label: self.value}


@dataclass
class PlainValue:
    """Filing row whose value is a single string."""
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "plain", "value": self.value}


@dataclass
class LabeledList:
    """Filing row whose value is a list of label/value pairs."""
    items: List[LabeledValue]

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "list", "items": [item.to_dict() for item in self.items]}


FilingValue = Union[PlainValue, LabeledList]


@dataclass
class FilingEntry:
    label: str
    value: FilingValue

    def to_dict(self) -> Dict[str, Any]:
        return {self.label: self.value.to_dict()}


@dataclass
class DirectorEntry:
    name: str
    address: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "address": self.address}


@dataclass
class DirectorSection:
    counts: List[LabeledValue] = field(default_factory=list)
    directors: List[DirectorEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "director_count": [c.to_dict() for c in self.counts],
            "director_personal_data": [d.to_dict() for d in self.directors],
        }


@dataclass
class HistorySection:
    name_history_title: str
    name_history: List[LabeledValue]
    panel_title: str
    panel_rows: List[LabeledValue]

    def to_dict(self) -> Dict[str, Any]:
        return {
            self.name_history_title: [r.to_dict() for r in self.name_history],
            self.panel_title: [r.to_dict() for r in self.panel_rows],
        }


@dataclass
class ExtractedCorporationRecord:
    """Structured view of a legacy federal corporation detail page."""
    corp_details: List[LabeledValue]
    address_details: str
    director_details: DirectorSection
    annual_filings_details: List[FilingEntry]
    corp_history_details: HistorySection

    def detail(self, label: str) -> Optional[str]:
        """Value of a header field by label, or ``None``."""
        for item in self.corp_details:
            if item.label == label:
                return item.value
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "corp_details": [d.to_dict() for d in self.corp_details],
            "address_details": self.address_details,
            "director_details": self.director_details.to_dict(),
            "annual_filings_details": [f.to_dict() for f in self.annual_filings_details],
            "corp_history_details": self.corp_history_details.to_dict(),
        }
