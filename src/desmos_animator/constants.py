"""Global constants for the application."""

# Render settings
DEFAULT_DURATION = 5.0  # Seconds of playback in the rendered animation
DEFAULT_FRAMES = 200  # Number of samples taken across the time range
DEFAULT_RESOLUTION = 10.0  # Pixels per calculator unit
DEFAULT_TIMEOUT = 30.0  # Seconds to wait at any single suspension point
DEFAULT_OUTPUT = "desmos.webm"

# Desmos host page
DEFAULT_API_VERSION = "v1.6"
DEFAULT_API_KEY = "dcb31709b452b1cf9dc26972add0fda6"  # Public demo key from the Desmos API docs
BROWSER_VIEWPORT = {"width": 1280, "height": 800}
GREEN = "#388c46"  # Calc.colors.GREEN

# Binding identifiers
FOLDER_ID = "bounds"
FOLDER_TITLE = "Bounds"
BINDING_PREFIX = "bounds"
CORNER_1_ID = "bounds x1y1"
CORNER_2_ID = "bounds x2y2"
RECT_ID = "bounds rect"
ANIMATE_ID = "bounds animate"
START_ACTION_ID = "bounds start action"
TIME_ID = "bounds time"
EDGE_IDS = ("bounds x1", "bounds x2", "bounds y1", "bounds y2")

# Binding LaTeX
EDGE_VARIABLES = {
    "x1": "B_{x1}",
    "x2": "B_{x2}",
    "y1": "B_{y1}",
    "y2": "B_{y2}",
}
DEFAULT_EDGE_VALUES = {
    "x1": -9.6,
    "x2": 9.6,
    "y1": -5.4,
    "y2": 5.4,
}
TIME_VARIABLE = "t_{ime}"
ANIMATE_VARIABLE = "a_{nimate}"
DEFAULT_TIME_RANGE = ("0", "1")

# Evaluating a bare number through a helper expression never notifies,
# so every evaluated expression gets this suffix
EVALUATION_SUFFIX = "+0"

# Capture
CAPTURE_MODE = "stretch"
CHROME_SETTINGS = ("showGrid", "showXAxis", "showYAxis")
