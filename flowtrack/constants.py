DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_BASE_URL = "http://localhost:8081/api"
DEFAULT_TIMEOUT = 30.0
TREND_WINDOW_DAYS = 7
