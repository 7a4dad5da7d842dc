"""Small helpers shared across CIRISUpdater."""
