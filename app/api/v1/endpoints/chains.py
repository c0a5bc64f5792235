"""
Chain endpoints
"""

from typing import Any, List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import AppContext, get_context
from app.core.database import get_session
from app.core.security import require_admin
from app.models.user import User
from app.schemas.chain import ChainCreate, ChainDeleteResponse, ChainResponse, ChainUpdate
from app.services.admin_service import AdminService

router = APIRouter()


def _admin_service(db: AsyncSession, context: AppContext) -> AdminService:
    return AdminService(db, context.cache, context.settings)


@router.get("", response_model=List[ChainResponse])
async def list_chains(
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    List chains with their venue counts
    """
    chains = await _admin_service(db, context).list_chains()
    return [
        ChainResponse.model_validate(chain).model_copy(update={"venue_count": count})
        for chain, count in chains
    ]


@router.get("/{chain_id}", response_model=ChainResponse)
async def get_chain(
    chain_id: int,
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    return await _admin_service(db, context).get_chain(chain_id)


@router.post("", response_model=ChainResponse, status_code=status.HTTP_201_CREATED)
async def create_chain(
    chain_data: ChainCreate,
    admin_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Create a chain (admin only)
    """
    return await _admin_service(db, context).create_chain(chain_data)


@router.put("/{chain_id}", response_model=ChainResponse)
async def update_chain(
    chain_id: int,
    chain_data: ChainUpdate,
    admin_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Update a chain (admin only)
    """
    return await _admin_service(db, context).update_chain(chain_id, chain_data)


@router.delete("/{chain_id}", response_model=ChainDeleteResponse)
async def delete_chain(
    chain_id: int,
    admin_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Delete a chain; member venues are kept and unassigned
    """
    return await _admin_service(db, context).delete_chain(chain_id)
