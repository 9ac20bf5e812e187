from app.models.map_pool import SavedMapPool, SavedMapPoolStage

__all__ = [
    "SavedMapPool",
    "SavedMapPoolStage",
]
