"""Style generation route: synchronous text model call returning a style config."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from posegen.errors import AIParseError, UpstreamError
from posegen.schemas.api_schemas import GenerateStyleRequest, GenerateStyleResponse
from posegen.service import PoseService, get_pose_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/styles/generate", response_model=GenerateStyleResponse)
def generate_style(request: GenerateStyleRequest, service: PoseService = Depends(get_pose_service)):
    try:
        data = service.generate_style(request.description)
    except UpstreamError as e:
        logger.error("Failed to generate style: %s", e)
        raise HTTPException(status_code=500, detail="Failed to generate style")
    except AIParseError as e:
        logger.error("Failed to parse generated style JSON: %s (text=%r)", e, e.raw[:500])
        raise HTTPException(status_code=500, detail="Failed to parse generated style")
    return GenerateStyleResponse(success=True, data=data)
