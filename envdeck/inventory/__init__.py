"""Inventory -- which locations define or lack each secret and variable."""

from envdeck.inventory.reconciler import Inventory, InventoryEntry, Location, reconcile, scan

__all__ = ["Inventory", "InventoryEntry", "Location", "reconcile", "scan"]
