from app.db.base_class import Base

__all__ = ["Base"]
