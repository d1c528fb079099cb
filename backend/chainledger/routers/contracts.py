from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from chainledger.core.errors import Conflict, ContractNotFound, InvalidInput, NetworkNotFound
from chainledger.core.filters import paginate
from chainledger.database import get_db
from chainledger.models.contract import SmartContract
from chainledger.models.network import Network
from chainledger.models.token import Token
from chainledger.schemas.common import OperationResult
from chainledger.schemas.contract import ContractOut, CreateContractRequest, UpdateContractRequest

router = APIRouter(prefix="/api/contracts", tags=["contracts"])


async def _get_contract(db: AsyncSession, contract_id: int) -> SmartContract:
    contract = await db.get(SmartContract, contract_id)
    if not contract:
        raise ContractNotFound()
    return contract


@router.get("", response_model=list[ContractOut])
async def list_contracts(
    network_id: Optional[int] = None,
    contract_type: Optional[str] = None,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    limit, offset = paginate(page, limit)
    stmt = select(SmartContract)
    if network_id is not None:
        stmt = stmt.where(SmartContract.network_id == network_id)
    if contract_type is not None:
        stmt = stmt.where(SmartContract.contract_type == contract_type)
    stmt = stmt.order_by(SmartContract.created_at.desc(), SmartContract.id.desc())
    return list(await db.scalars(stmt.limit(limit).offset(offset)))


@router.get("/{contract_id}", response_model=ContractOut)
async def get_contract(contract_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_contract(db, contract_id)


@router.post("", response_model=ContractOut, status_code=201)
async def create_contract(body: CreateContractRequest, db: AsyncSession = Depends(get_db)):
    if not await db.get(Network, body.network_id):
        raise NetworkNotFound()
    existing = await db.scalar(select(SmartContract).where(
        SmartContract.address == body.address, SmartContract.network_id == body.network_id,
    ))
    if existing:
        raise Conflict("Contract already registered on this network")
    contract = SmartContract(
        name=body.name,
        address=body.address,
        network_id=body.network_id,
        abi=body.abi,
        bytecode=body.bytecode,
        version=body.version,
        contract_type=body.contract_type.value,
        deployed_by=body.deployed_by,
    )
    db.add(contract)
    await db.commit()
    return contract


@router.patch("/{contract_id}", response_model=ContractOut)
async def update_contract(contract_id: int, body: UpdateContractRequest, db: AsyncSession = Depends(get_db)):
    changes = body.model_dump(exclude_none=True)
    if not changes:
        raise InvalidInput("No fields to update")
    contract = await _get_contract(db, contract_id)
    for field, value in changes.items():
        setattr(contract, field, value)
    await db.commit()
    return contract


@router.delete("/{contract_id}", response_model=OperationResult)
async def delete_contract(contract_id: int, db: AsyncSession = Depends(get_db)):
    contract = await _get_contract(db, contract_id)
    tokens = await db.scalar(select(func.count()).select_from(Token).where(Token.contract_id == contract_id))
    if tokens:
        raise Conflict(f"Contract is referenced by {tokens} token(s)")
    await db.delete(contract)
    await db.commit()
    return OperationResult(success=True, message="Contract deleted successfully")
