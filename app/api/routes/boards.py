import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.identity import get_current_user, require_user
from app.db import crud
from app.db.session import get_db
from app.schemas.board import BoardCreate, BoardRead, BoardUpdate, BoardWithColumns
from app.schemas.column import ColumnCreate, ColumnRead
from app.schemas.user import CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/boards", tags=["boards"])


async def _get_board_or_404(db: AsyncSession, board_id: int):
    board = await crud.get_board(db, board_id)
    if not board:
        raise HTTPException(status_code=404, detail="Board not found")
    return board


@router.post("/", response_model=BoardWithColumns, status_code=201)
async def create_board(
    board: BoardCreate,
    db: AsyncSession = Depends(get_db),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    """Create a board together with its default columns."""
    user = require_user(user)
    title = board.title.strip()
    if not title:
        raise HTTPException(status_code=422, detail="Title is required")

    db_board = await crud.create_board_with_default_columns(
        db,
        title=title,
        user_id=user.id,
        description=board.description,
        color=board.color,
    )
    logger.info(f"Created board {db_board.id} for user {user.id}")
    return db_board


@router.get("/", response_model=List[BoardRead])
async def list_boards(
    db: AsyncSession = Depends(get_db),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    """List the caller's boards, newest first."""
    user = require_user(user)
    return await crud.get_boards(db, user.id)


@router.get("/{board_id}", response_model=BoardWithColumns)
async def get_board(
    board_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Fetch a board with its columns and their tasks."""
    board = await crud.get_board_with_columns(db, board_id)
    if not board:
        raise HTTPException(status_code=404, detail="Board not found")
    return board


@router.patch("/{board_id}", response_model=BoardRead)
async def update_board(
    board_id: int,
    data: BoardUpdate,
    db: AsyncSession = Depends(get_db),
):
    fields = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    if "title" in fields:
        fields["title"] = fields["title"].strip()
        if not fields["title"]:
            raise HTTPException(status_code=422, detail="Title is required")

    board = await _get_board_or_404(db, board_id)
    return await crud.update_board(db, board, fields)


@router.post("/{board_id}/columns", response_model=ColumnRead, status_code=201)
async def create_column(
    board_id: int,
    column: ColumnCreate,
    db: AsyncSession = Depends(get_db),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    title = column.title.strip()
    if not title:
        raise HTTPException(status_code=422, detail="Title is required")

    await _get_board_or_404(db, board_id)
    return await crud.create_column(db, board_id, title, user.id if user else None)
