"""Work-piece and robot model definitions."""
