"""
CRUD core schemas for building components

Lengths and heights of walls are measured in feet, the thickness
in inches. Window dimensions are measured in feet, the area in
square feet. Energy values use the usual imperial units.
"""

import uuid
import datetime
from typing import Optional

import pydantic


def _text(max_length: int, required: bool = False):
    if required:
        return pydantic.constr(strip_whitespace=True, min_length=1, max_length=max_length)
    return pydantic.constr(max_length=max_length)


class WallCreation(pydantic.BaseModel):
    name: _text(200, True)
    description: Optional[_text(1000)] = None
    length: pydantic.confloat(ge=0.1, le=1000)
    height: pydantic.confloat(ge=0.1, le=100)
    thickness: pydantic.confloat(ge=0.1, le=100)
    assembly_type: _text(500, True)
    assembly_details: Optional[_text(1000)] = None
    r_value: Optional[pydantic.confloat(ge=0, le=100)] = None
    u_value: Optional[pydantic.confloat(ge=0, le=10)] = None
    material_layers: Optional[_text(2000)] = None
    orientation: Optional[_text(50)] = None
    location: Optional[_text(50)] = None


class WallUpdate(WallCreation):
    pass


class Wall(WallCreation):
    id: uuid.UUID
    created_at: datetime.datetime
    updated_at: Optional[datetime.datetime] = None


class WindowCreation(pydantic.BaseModel):
    name: _text(200, True)
    description: Optional[_text(1000)] = None
    width: pydantic.confloat(ge=0.1, le=100)
    height: pydantic.confloat(ge=0.1, le=100)
    area: pydantic.confloat(ge=0.01, le=1000)
    frame_type: _text(100, True)
    frame_details: Optional[_text(500)] = None
    glazing_type: _text(100, True)
    glazing_details: Optional[_text(500)] = None
    u_value: Optional[pydantic.confloat(ge=0, le=10)] = None
    solar_heat_gain_coefficient: Optional[pydantic.confloat(ge=0, le=1)] = None
    visible_transmittance: Optional[pydantic.confloat(ge=0, le=1)] = None
    air_leakage: Optional[pydantic.confloat(ge=0, le=100)] = None
    energy_star_rating: Optional[_text(50)] = None
    nfrc_rating: Optional[_text(50)] = None
    orientation: Optional[_text(50)] = None
    location: Optional[_text(100)] = None
    installation_type: Optional[_text(50)] = None
    operation_type: Optional[_text(100)] = None
    has_screens: Optional[bool] = None
    has_storm_windows: Optional[bool] = None


class WindowUpdate(WindowCreation):
    pass


class Window(WindowCreation):
    id: uuid.UUID
    created_at: datetime.datetime
    updated_at: Optional[datetime.datetime] = None
