import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseModel):
    firebase_database_url: str | None = os.getenv("FIREBASE_DATABASE_URL")
    firebase_auth: str | None = os.getenv("FIREBASE_AUTH")
    question_source_file: str | None = os.getenv("QUESTION_SOURCE_FILE")
    question_fetch_timeout: float = float(os.getenv("QUESTION_FETCH_TIMEOUT", "10"))
    progress_store_path: str = os.getenv("PROGRESS_STORE_PATH", "data/progress.json")
    quiz_timezone: str = os.getenv("QUIZ_TIMEZONE", "UTC")
    answer_log_dir: str | None = os.getenv("ANSWER_LOG_DIR")
    log_level: str = os.getenv("LOG_LEVEL", "DEBUG").upper()

settings = Settings()
