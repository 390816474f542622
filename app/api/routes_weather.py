# app/api/routes_weather.py
"""
Weather API routes.

Current conditions at a coordinate, and route validation against a
certification level.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..container import Container
from ..errors import ReschedulerError
from ..logging import get_api_logger
from ..weather.models import Coordinate, Route
from .deps import container_dependency, http_error

logger = get_api_logger()

router = APIRouter(prefix="/weather", tags=["weather"])


class CoordinateModel(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    def to_coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


class ValidateRouteRequest(BaseModel):
    """Route and certification level to check."""
    departure: CoordinateModel
    arrival: CoordinateModel
    departure_id: Optional[str] = None
    arrival_id: Optional[str] = None
    certification_level: str = "STUDENT_PILOT"


class ValidateRouteResponse(BaseModel):
    is_valid: bool
    violations: List[str]
    confidence: int
    observations: List[Dict[str, Any]]
    checked_at: Optional[str] = None


@router.get("")
def get_weather(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    cross_validate: bool = False,
    container: Container = Depends(container_dependency),
) -> Dict[str, Any]:
    """Current weather at a coordinate (optionally cross-validated)."""
    coord = Coordinate(lat, lon)
    try:
        if cross_validate:
            observation = container.gateway.get_observation_with_cross_validation(coord)
        else:
            observation = container.gateway.get_observation(coord)
    except ReschedulerError as e:
        logger.warning("weather_lookup_failed", coord=coord.cache_key(), error=str(e))
        raise http_error(e) from e
    return observation.to_dict()


@router.post("/validate", response_model=ValidateRouteResponse)
def validate_route(
    request: ValidateRouteRequest,
    container: Container = Depends(container_dependency),
) -> ValidateRouteResponse:
    """Check current weather along a route against certification minimums."""
    route = Route(
        departure=request.departure.to_coordinate(),
        arrival=request.arrival.to_coordinate(),
        departure_id=request.departure_id,
        arrival_id=request.arrival_id,
    )
    verdict = container.validator.validate_route(route, request.certification_level)
    return ValidateRouteResponse(**verdict.to_dict())
