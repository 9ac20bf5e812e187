"""
API Routes for Map Pools and Map Lists

Thin HTTP layer over the map services: pool strings travel in the `pool`
query/body field, pool errors surface as 422.
"""

import logging
import os
import re
from typing import Annotated, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.database import get_session
from app.models.map_pool import CODE_MAX_LENGTH, CODE_MIN_LENGTH, SavedMapPool, SavedMapPoolStage
from app.services.map_catalog import stage_count
from app.services.map_list_generator import generate_map_lists
from app.services.map_pool import DEFAULT_MAP_POOL, MapPool, MapPoolError
from app.services.map_pool_codec import encode_map_pool, serialized_string_or_default
from app.services.mode_order import ModePolicy, plan_mode_sequence

logger = logging.getLogger(__name__)

router = APIRouter()

AMOUNT_OF_MAPS_IN_MAP_LIST = stage_count() * 2
MAX_MAP_LIST_LENGTH = AMOUNT_OF_MAPS_IN_MAP_LIST * 4
MAX_MAP_LISTS = 10

_CODE_RE = re.compile(r"^[A-Za-z0-9]+$")


def parse_map_list_seed(raw: Optional[str]) -> Optional[int]:
    """MAP_LIST_SEED value as an int; unset or malformed means entropy"""
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring MAP_LIST_SEED={raw!r}: not an integer")
        return None


MAP_LIST_SEED = parse_map_list_seed(os.getenv("MAP_LIST_SEED"))


# ============================================================================
# Request/Response Models
# ============================================================================


class MapPoolResponse(BaseModel):
    pool: Dict[str, List[int]]
    serialized: str
    is_default: bool
    non_empty_modes: List[str]


class ToggleStageRequest(BaseModel):
    pool: Optional[str] = None
    mode: str
    stage_id: int


class MapListRequest(BaseModel):
    pool: Optional[str] = None
    policy: ModePolicy = "EQUAL"
    counts: List[Annotated[int, Field(ge=1, le=MAX_MAP_LIST_LENGTH)]] = Field(
        default_factory=lambda: [AMOUNT_OF_MAPS_IN_MAP_LIST],
        min_length=1,
        max_length=MAX_MAP_LISTS,
    )
    seed: Optional[int] = None


class ModeStageResponse(BaseModel):
    mode: str
    stage_id: int


class MapListResponse(BaseModel):
    policy: str
    mode_sequence: List[str]
    map_lists: List[List[ModeStageResponse]]


class SaveMapPoolRequest(BaseModel):
    owner_id: int
    code: str = Field(min_length=CODE_MIN_LENGTH, max_length=CODE_MAX_LENGTH)
    pool: str

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        if not _CODE_RE.match(v):
            raise ValueError("code must be alphanumeric")
        return v


class SavedMapPoolResponse(BaseModel):
    id: int
    owner_id: int
    code: str
    pool: Dict[str, List[int]]
    serialized: str
    created_at: str


def _pool_response(pool: MapPool) -> MapPoolResponse:
    return MapPoolResponse(
        pool=pool.to_dict(),
        serialized=encode_map_pool(pool),
        is_default=pool == DEFAULT_MAP_POOL,
        non_empty_modes=pool.non_empty_modes(),
    )


def _saved_response(record: SavedMapPool, pool: MapPool) -> SavedMapPoolResponse:
    return SavedMapPoolResponse(
        id=record.id,
        owner_id=record.owner_id,
        code=record.code,
        pool=pool.to_dict(),
        serialized=encode_map_pool(pool),
        created_at=record.created_at.isoformat(),
    )


def _decode_or_422(serialized: Optional[str]) -> MapPool:
    try:
        return serialized_string_or_default(serialized, DEFAULT_MAP_POOL)
    except MapPoolError as e:
        logger.warning(f"Rejected map pool string {serialized!r}: {e}")
        raise HTTPException(status_code=422, detail=str(e))


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/maps/pool", response_model=MapPoolResponse)
def get_map_pool(pool: Optional[str] = Query(default=None)):
    """Decode a pool string (default pool when absent)"""
    return _pool_response(_decode_or_422(pool))


@router.post("/maps/pool/toggle", response_model=MapPoolResponse)
def toggle_map_pool_stage(request: ToggleStageRequest):
    """Flip one (mode, stage) membership and return the new pool string"""
    current = _decode_or_422(request.pool)
    try:
        updated = current.toggle(request.mode, request.stage_id)
    except MapPoolError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _pool_response(updated)


@router.post("/maps/map-list", response_model=MapListResponse)
def create_map_list(request: MapListRequest):
    """Plan modes over the pool's non-empty modes and draw the map list(s)"""
    pool = _decode_or_422(request.pool)
    if pool.is_empty():
        raise HTTPException(status_code=422, detail="Map pool has no stages in any mode")

    seed = request.seed if request.seed is not None else MAP_LIST_SEED
    try:
        sequence = plan_mode_sequence(request.policy, pool.non_empty_modes(), max(request.counts))
        map_lists = generate_map_lists(pool, sequence, request.counts, seed=seed)
    except MapPoolError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return MapListResponse(
        policy=request.policy,
        mode_sequence=list(sequence),
        map_lists=[
            [ModeStageResponse(mode=item.mode, stage_id=item.stage_id) for item in map_list]
            for map_list in map_lists
        ],
    )


@router.post("/maps/pools", response_model=SavedMapPoolResponse, status_code=201)
def save_map_pool(request: SaveMapPoolRequest, session: Session = Depends(get_session)):
    """Save a pool under a short code"""
    pool = _decode_or_422(request.pool)

    existing = session.exec(select(SavedMapPool).where(SavedMapPool.code == request.code)).first()
    if existing:
        raise HTTPException(status_code=409, detail=f"Map pool code '{request.code}' is already taken")

    record = SavedMapPool(owner_id=request.owner_id, code=request.code)
    record.stages = [SavedMapPoolStage(mode=mode, stage_id=stage_id) for mode, stage_id in pool.to_pairs()]
    session.add(record)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail=f"Map pool code '{request.code}' is already taken")
    session.refresh(record)

    logger.info(
        "Saved map pool %s for owner %d (%d stages)",
        record.code,
        record.owner_id,
        len(record.stages),
    )
    return _saved_response(record, pool)


@router.get("/maps/pools/{code}", response_model=SavedMapPoolResponse)
def get_saved_map_pool(code: str, session: Session = Depends(get_session)):
    """Load a saved pool by code"""
    record = session.exec(select(SavedMapPool).where(SavedMapPool.code == code)).first()
    if not record:
        raise HTTPException(status_code=404, detail="Map pool not found")

    pool = MapPool.from_pairs((row.mode, row.stage_id) for row in record.stages)
    return _saved_response(record, pool)
