"""
Collecting router of all path operations of the core REST API
"""

from fastapi import APIRouter


router = APIRouter()
