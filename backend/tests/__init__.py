import os

# Keep the app's own engine off disk; tests use conftest.test_engine
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from marquee.database import register_models  # noqa: E402

register_models()
