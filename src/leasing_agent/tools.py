"""
Tools Module.

The leasing tools the agent may call while generating a reply. Each tool
has a pydantic input schema; LangChain validates model-supplied arguments
against it before the tool body runs.
"""

import logging
from typing import List, Optional, Protocol, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.tools import BaseTool, tool
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

UNIT_RESULT_LIMIT = 5


# ============================================================================
# INPUT SCHEMAS
# ============================================================================

class PrequalificationInput(BaseModel):
    monthly_income: str = Field(..., description="Monthly income")
    has_pets: str = Field(..., description="Do you have pets")
    is_smoker: str = Field(..., description="Are you a smoker? yes or no")


class UnitSearchInput(BaseModel):
    city_and_state: Optional[str] = Field(None, description="City, State")
    max_budget: Optional[float] = Field(None, description="Maximum monthly rent budget in dollars")
    min_bedrooms: Optional[int] = Field(None, description="Minimum number of bedrooms required")
    max_bedrooms: Optional[int] = Field(None, description="Maximum number of bedrooms")
    amenities: Optional[List[str]] = Field(
        None,
        description='List of required amenities (e.g., "parking", "gym", "in-unit laundry", "pool", "pet-friendly")'
    )


class AppointmentInput(BaseModel):
    name: str = Field(..., description="Full name of the caller")
    phone_number: str = Field(..., description="10-digit phone number")
    unit_id: str = Field(..., description="Unit ID of the property")
    appointment_time: str = Field(..., description="Time of appointment in ISO format")


# ============================================================================
# UNIT SEARCH BACKEND
# ============================================================================

class UnitListing(BaseModel):
    id: str
    address: str = Field(
        ..., description="Short address of the property consisting of house number, street, city, and state"
    )
    bedrooms: int
    bathrooms: float
    monthly_rent: float = Field(..., description="Monthly rent in dollars")
    square_feet: int
    amenities: List[str] = Field(..., description="3 amenities available in the unit")
    upcoming_appointment_times: List[str] = Field(
        ..., description="3 upcoming appointment times over the coming 7 days in ISO format"
    )


class UnitListings(BaseModel):
    units: List[UnitListing]


class UnitSearchBackend(Protocol):
    """Inventory lookup used by the ``get_units`` tool."""

    async def search(self, filters: UnitSearchInput) -> List[UnitListing]:
        ...


class LLMUnitSearchBackend:
    """
    Unit search backed by an LLM generating plausible listings.

    Stand-in for a real inventory API or database query.
    """

    def __init__(self, llm: BaseChatModel, count: int = UNIT_RESULT_LIMIT):
        self.count = count
        self.structured_llm = llm.with_structured_output(UnitListings)

    async def search(self, filters: UnitSearchInput) -> List[UnitListing]:
        bedrooms = "Any"
        if filters.min_bedrooms:
            bedrooms = f"At least {filters.min_bedrooms}"
        if filters.max_bedrooms:
            bedrooms = f"{bedrooms} up to {filters.max_bedrooms}"

        prompt = (
            f"Generate {self.count} rental unit listings that match these criteria:\n"
            f"- City and State: {filters.city_and_state or 'Any'}\n"
            f"- Maximum budget: {f'${filters.max_budget:.0f}/month' if filters.max_budget else 'No limit'}\n"
            f"- Bedrooms: {bedrooms}\n"
            f"- Required amenities: {', '.join(filters.amenities or []) or 'None specified'}\n\n"
            "Create realistic apartment/house listings with varied prices, sizes, and features."
        )
        result = await self.structured_llm.ainvoke(prompt)
        return list(result.units)


# ============================================================================
# TOOLS
# ============================================================================

@tool("fetch_prequalification_questions", args_schema=PrequalificationInput)
async def fetch_prequalification_questions(monthly_income: str, has_pets: str, is_smoker: str) -> dict:
    """Fetch pre-qualification screening questions for rental applicants"""
    if is_smoker == "yes":
        return {"qualified": "no", "why": "None of our properties accept smokers"}
    return {"qualified": "yes"}


@tool("book_appointment", args_schema=AppointmentInput)
async def book_appointment(name: str, phone_number: str, unit_id: str, appointment_time: str) -> dict:
    """Book a property tour appointment"""
    # Stand-in for the booking API
    logger.info("Booking tour of unit %s at %s", unit_id, appointment_time)
    return {"success": True}


def make_get_units_tool(backend: UnitSearchBackend, limit: int = UNIT_RESULT_LIMIT) -> BaseTool:
    """
    Build the ``get_units`` tool around a search backend.

    Args:
        backend: Inventory lookup
        limit: Maximum number of listings returned to the model

    Returns:
        The tool
    """

    @tool("get_units", args_schema=UnitSearchInput)
    async def get_units(
        city_and_state: Optional[str] = None,
        max_budget: Optional[float] = None,
        min_bedrooms: Optional[int] = None,
        max_bedrooms: Optional[int] = None,
        amenities: Optional[List[str]] = None,
    ) -> list:
        """Fetch available units and properties based on budget, bedrooms, and amenity requirements"""
        filters = UnitSearchInput(
            city_and_state=city_and_state,
            max_budget=max_budget,
            min_bedrooms=min_bedrooms,
            max_bedrooms=max_bedrooms,
            amenities=amenities,
        )
        units = await backend.search(filters)
        logger.info("Unit search returned %d listing(s)", len(units))
        return [unit.model_dump() for unit in units[:limit]]

    return get_units


# ============================================================================
# TOOL REGISTRY
# ============================================================================

def build_tools(unit_search: UnitSearchBackend) -> Sequence[BaseTool]:
    """
    Build the immutable tool set handed to the agent.

    Args:
        unit_search: Backend for the ``get_units`` tool
    """
    return (
        fetch_prequalification_questions,
        make_get_units_tool(unit_search),
        book_appointment,
    )
