import os


class Settings:
    PROJECT_NAME: str = "idiomquiz"
    DEBUG: bool = os.environ.get("DEBUG", "0") == "1"
    LOG_DIR: str = os.environ.get("LOG_DIR", "log")
    LOG_FILE: str = "idiomquiz.log"
    LOG_TO_DB: bool = os.environ.get("LOG_TO_DB", "1") == "1"
    DB_DIR: str = os.environ.get("DB_DIR", "db")
    DB_FILE: str = "idiomquiz.db"
    QUESTION_SOURCE: str = os.environ.get("QUESTION_SOURCE", "local")
    QUESTIONS_DIR: str = os.environ.get("QUESTIONS_DIR", "questions")
    QUESTIONS_API_URL: str = os.environ.get("QUESTIONS_API_URL", "http://localhost:5000/api")
    HTTP_TIMEOUT: float = float(os.environ.get("HTTP_TIMEOUT", "10"))
    QUIZ_SIZE: int = 10
    QUIZ_CATEGORY: str = "idiom-challenge"
    PASS_THRESHOLD: int = 70
    SESSION_COOKIE_NAME: str = "quiz_session_id"
    SESSION_TIMEOUT_MINUTES: int = 120
    ROOT_PATH: str = os.environ.get("ROOT_PATH", "")


settings = Settings()
