"""
Department inventory ledger.

Models:
- InventoryItem (catalog item with the canonical global quantity)
- DepartmentInventory (quantity per item per department / section)
- InventoryMovement (append-only deltas applied to department rows)
"""
