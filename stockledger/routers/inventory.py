from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from stockledger.dependencies import get_db
from stockledger.schemas.inventory import InventoryRead
from stockledger.services.ledger import get_inventory_row

router = APIRouter(prefix="/inventory", tags=["Inventory"])


@router.get("/{store_id}/{product_id}", response_model=InventoryRead)
def read_inventory(store_id: int, product_id: int, db: Session = Depends(get_db)):
    row = get_inventory_row(db, store_id, product_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Inventory row not found.")
    return row
