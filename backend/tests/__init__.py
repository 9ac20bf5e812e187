# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from app.models.map_pool import SavedMapPool, SavedMapPoolStage  # noqa: F401
