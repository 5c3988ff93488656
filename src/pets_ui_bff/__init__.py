# src/pets_ui_bff/__init__.py

__version__ = "0.1.0"
