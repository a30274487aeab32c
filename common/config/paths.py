"""Path configuration for the classroom vision service."""
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=BASE_DIR / ".env")

# Directories
DATA_DIR = BASE_DIR / "data"
MODELS_DIR = BASE_DIR / "models"
DEFAULT_GALLERY_DIR = DATA_DIR / "students"

# Book classifier weights (Ultralytics classification model)
DEFAULT_OBJECT_MODEL_PATH = MODELS_DIR / "books-cls.pt"
