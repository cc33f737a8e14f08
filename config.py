import os

from dotenv import load_dotenv

load_dotenv()

# Base directory
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Paths
LOG_FILE = os.path.join(BASE_DIR, "launch.log")
QUESTION_BANK_FILE = os.getenv("QUESTION_BANK_FILE", os.path.join(BASE_DIR, "data", "question_bank.json"))

# Server
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))
# Browser origins of the exam front end, comma separated
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

# Exam session
SESSION_DURATION_SECONDS = int(os.getenv("SESSION_DURATION_SECONDS", "7200"))  # 2 hours
PINNED_SUBJECT_TERM = os.getenv("PINNED_SUBJECT_TERM", "english")
PINNED_SUBJECT_LABEL = os.getenv("PINNED_SUBJECT_LABEL", "English")
PINNED_QUESTION_COUNT = int(os.getenv("PINNED_QUESTION_COUNT", "10"))
DEFAULT_QUESTION_COUNT = int(os.getenv("DEFAULT_QUESTION_COUNT", "5"))
LOAD_TIMEOUT_SECONDS = float(os.getenv("LOAD_TIMEOUT_SECONDS", "15.0"))

# In-memory session store
SESSION_TTL = int(os.getenv("SESSION_TTL", "10800"))  # 3 hours, outlives one exam
SESSION_SWEEP_INTERVAL = 300

# Supabase (question catalog)
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_KEY = os.getenv("SUPABASE_KEY", "")
