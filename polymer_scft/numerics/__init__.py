# numerics/__init__.py
