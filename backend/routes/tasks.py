"""Task polling route.

GET /api/tasks/{task_id}
  → Returns status, progress, message and result / error when terminal.
"""

from fastapi import APIRouter, Depends, HTTPException

from posegen.errors import NotFoundError
from posegen.schemas.api_schemas import TaskStatusResponse
from posegen.service import PoseService, get_pose_service

router = APIRouter()


@router.get(
    "/tasks/{task_id}",
    response_model=TaskStatusResponse,
    summary="Get task status",
    description="Poll this endpoint until status is completed or failed.",
)
async def get_task(task_id: str, service: PoseService = Depends(get_pose_service)):
    try:
        task = service.get_task(task_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return TaskStatusResponse(
        task_id=task.task_id,
        kind=task.kind.value,
        subject_ref=task.subject_ref,
        status=task.status.value,
        progress=task.progress,
        message=task.message,
        result=task.result,
        error=task.error,
        created_at=task.created_at.isoformat() if task.created_at else "",
        updated_at=task.updated_at.isoformat() if task.updated_at else "",
    )
