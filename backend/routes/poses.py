"""Pose API routes.

POST /api/episodes/{episode_id}/poses/extract
  → Creates a pose_extraction task, returns { task_id } immediately.

POST /api/poses/{pose_id}/generate
  → Creates a pose_image_generation task, returns { task_id, message }.

Poll GET /api/tasks/{task_id} for either. The remaining routes are plain
reads and writes on poses.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from posegen.errors import DuplicatePoseError, InvalidStateError, NotFoundError
from posegen.schemas.api_schemas import (
    AssociatePosesRequest,
    CreatePoseRequest,
    TaskStartedResponse,
    UpdatePoseRequest,
)
from posegen.schemas.models import Pose
from posegen.service import PoseService, get_pose_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/dramas/{drama_id}/poses", response_model=list[Pose])
async def list_poses(drama_id: int, service: PoseService = Depends(get_pose_service)):
    """List poses of a drama."""
    return service.list_poses(drama_id)


@router.post("/poses", response_model=Pose, status_code=status.HTTP_201_CREATED)
async def create_pose(request: CreatePoseRequest, service: PoseService = Depends(get_pose_service)):
    try:
        return service.create_pose(Pose(**request.model_dump()))
    except DuplicatePoseError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.put("/poses/{pose_id}", response_model=Pose)
async def update_pose(
    pose_id: int,
    request: UpdatePoseRequest,
    service: PoseService = Depends(get_pose_service),
):
    try:
        return service.update_pose(pose_id, request.model_dump(exclude_unset=True))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DuplicatePoseError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/poses/{pose_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pose(pose_id: int, service: PoseService = Depends(get_pose_service)):
    try:
        service.delete_pose(pose_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post(
    "/poses/{pose_id}/generate",
    response_model=TaskStartedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start pose image generation (async)",
)
async def generate_pose_image(pose_id: int, service: PoseService = Depends(get_pose_service)):
    """Start image generation from the pose description; returns task_id for polling."""
    try:
        task_id = service.generate_image(pose_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStateError as e:
        logger.info("Rejected image generation for pose %s: %s", pose_id, e)
        raise HTTPException(status_code=400, detail=str(e))
    return TaskStartedResponse(task_id=task_id, message="image generation task submitted")


@router.post("/storyboards/{storyboard_id}/poses", status_code=status.HTTP_204_NO_CONTENT)
async def associate_poses(
    storyboard_id: int,
    request: AssociatePosesRequest,
    service: PoseService = Depends(get_pose_service),
):
    """Replace the set of poses attached to a storyboard."""
    try:
        service.associate_poses_with_storyboard(storyboard_id, request.pose_ids)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post(
    "/episodes/{episode_id}/poses/extract",
    response_model=TaskStartedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start pose extraction from the episode script (async)",
)
async def extract_poses(episode_id: int, service: PoseService = Depends(get_pose_service)):
    try:
        task_id = service.extract_from_script(episode_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return TaskStartedResponse(task_id=task_id, message="pose extraction task submitted")
