"""Work-piece model definitions."""

from models.workpieces.cylinder import CylinderWorkpiece

__all__ = ["CylinderWorkpiece"]
