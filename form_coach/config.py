# form_coach/config.py

import os

import dotenv

dotenv.load_dotenv()

# Backend (FastAPI) the camera client talks to
BACKEND_URL = os.getenv("FORM_COACH_BACKEND_URL", "http://127.0.0.1:8000")
BACKEND_TIMEOUT = float(os.getenv("FORM_COACH_BACKEND_TIMEOUT", "2.0"))

# LLM coaching
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
LLM_MODEL = os.getenv("FORM_COACH_LLM_MODEL", "llama-3.3-70b-versatile")
LLM_TIMEOUT = float(os.getenv("FORM_COACH_LLM_TIMEOUT", "1.5"))

# Camera
CAMERA_INDEX = int(os.getenv("FORM_COACH_CAMERA_INDEX", "0"))
FRAME_WIDTH = 640
FRAME_HEIGHT = 480

LOG_LEVEL = os.getenv("FORM_COACH_LOG_LEVEL", "INFO")
