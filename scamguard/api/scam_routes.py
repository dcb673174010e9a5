"""
Scam Detection API Routes
=========================

Endpoints for listing analysis and per-user heuristic preferences.

    GET   /api/scam/heuristics
    POST  /api/scam/analyze
    POST  /api/scam/screen
    GET   /api/scam/preferences/{user_id}
    PATCH /api/scam/preferences/{user_id}/heuristics/{heuristic_id}
    PUT   /api/scam/preferences/{user_id}/threshold
    POST  /api/scam/preferences/{user_id}/reset
    GET   /api/scam/stats

Errors: unknown heuristic -> 404, invalid options -> 422,
preference storage unavailable -> 503.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request

from ..exceptions import ConfigValidationError, NotFoundError, PersistenceError
from ..scoring.display import screen_listings
from ..services import ScamGuardServices
from .models import (
    AnalysisResponse,
    AnalyzeRequest,
    CatalogResponse,
    HeuristicCategoryModel,
    HeuristicDescriptorModel,
    HeuristicUpdateRequest,
    PreferencesResponse,
    ScreenedListingModel,
    ScreenRequest,
    ScreenResponse,
    ThresholdRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/scam", tags=["Scam Detection"])


def get_services(request: Request) -> ScamGuardServices:
    """Services built by the application lifespan."""
    return request.app.state.services


def _storage_unavailable(e: PersistenceError) -> HTTPException:
    logger.error(f"Preference storage unavailable: {e}")
    return HTTPException(status_code=503, detail="Analysis unavailable, retry later")


# ============================================================================
# ANALYSIS
# ============================================================================

@router.get("/heuristics", response_model=CatalogResponse, response_model_by_alias=True)
async def list_heuristics(services: ScamGuardServices = Depends(get_services)):
    """Heuristic catalog with defaults, UI categories and registered analyzers."""
    return CatalogResponse(
        heuristics=[HeuristicDescriptorModel.from_descriptor(d) for d in services.registry],
        categories=[HeuristicCategoryModel.from_category(c) for c in services.registry.categories],
        analyzers=services.runner.analyzers.ids(),
    )


@router.post("/analyze", response_model=AnalysisResponse, response_model_by_alias=True)
async def analyze_listing(request: AnalyzeRequest, services: ScamGuardServices = Depends(get_services)):
    """Score one listing with the user's preferences."""
    try:
        result = await services.engine.analyze(request.listing.to_subject(), request.user_id)
    except PersistenceError as e:
        raise _storage_unavailable(e)
    return AnalysisResponse.from_result(result)


@router.post("/screen", response_model=ScreenResponse, response_model_by_alias=True)
async def screen_catalog(request: ScreenRequest, services: ScamGuardServices = Depends(get_services)):
    """Score a page of listings and apply the display policy."""
    subjects = [listing.to_subject() for listing in request.listings]
    try:
        results = await services.engine.analyze_batch(subjects, request.user_id)
    except PersistenceError as e:
        raise _storage_unavailable(e)

    screened = screen_listings(list(zip(request.listings, results)), request.policy.to_policy())
    return ScreenResponse(
        items=[
            ScreenedListingModel(
                listing=item.listing,
                analysis=AnalysisResponse.from_result(item.analysis),
                action=item.action,
                display_warning=item.display_warning,
                hidden=item.hidden,
            )
            for item in screened.items
        ],
        total_found=screened.total_found,
        filtered=screened.filtered,
    )


@router.get("/stats")
async def runner_stats(services: ScamGuardServices = Depends(get_services)) -> Dict[str, Any]:
    """Heuristic invocation and failure counters."""
    return services.runner.get_stats()


# ============================================================================
# PREFERENCES
# ============================================================================

@router.get("/preferences/{user_id}", response_model=PreferencesResponse, response_model_by_alias=True)
async def get_preferences(user_id: str, services: ScamGuardServices = Depends(get_services)):
    try:
        prefs = await services.store.get_user_preferences(user_id)
    except PersistenceError as e:
        raise _storage_unavailable(e)
    return PreferencesResponse.from_preferences(prefs)


@router.patch(
    "/preferences/{user_id}/heuristics/{heuristic_id}",
    response_model=PreferencesResponse,
    response_model_by_alias=True,
)
async def update_heuristic(
    user_id: str,
    heuristic_id: str,
    update: HeuristicUpdateRequest,
    services: ScamGuardServices = Depends(get_services),
):
    try:
        prefs = await services.store.update_heuristic(user_id, heuristic_id, update.to_updates())
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConfigValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PersistenceError as e:
        raise _storage_unavailable(e)
    return PreferencesResponse.from_preferences(prefs)


@router.put(
    "/preferences/{user_id}/threshold",
    response_model=PreferencesResponse,
    response_model_by_alias=True,
)
async def update_threshold(
    user_id: str,
    request: ThresholdRequest,
    services: ScamGuardServices = Depends(get_services),
):
    try:
        prefs = await services.store.update_global_threshold(user_id, request.threshold)
    except PersistenceError as e:
        raise _storage_unavailable(e)
    return PreferencesResponse.from_preferences(prefs)


@router.post(
    "/preferences/{user_id}/reset",
    response_model=PreferencesResponse,
    response_model_by_alias=True,
)
async def reset_preferences(user_id: str, services: ScamGuardServices = Depends(get_services)):
    try:
        prefs = await services.store.reset_to_defaults(user_id)
    except PersistenceError as e:
        raise _storage_unavailable(e)
    return PreferencesResponse.from_preferences(prefs)
