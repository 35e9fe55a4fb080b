"""Centralized defaults and step vocabulary."""

# Browser
SUPPORTED_BROWSERS = ("chromium", "firefox", "webkit")
DEFAULT_BROWSER = "chromium"
DEFAULT_VIEWPORT = (1280, 720)

# Timeouts
DEFAULT_TIMEOUT_MS = 5000  # per automation call
DEFAULT_RETRY_CAPTCHA = 3

# Settle delays (ms)
STEP_DELAY_MS = 300  # between successful steps
ACTION_DELAY_MS = 200  # after a mutating form/table/menu action

# Evidence paths, relative to the project directory
DEFAULT_SCREENSHOTS_DIR = "assets/errors"
DEFAULT_CAPTCHA_DIR = "assets/captcha"

# Step vocabulary
ACTIONS = (
    "goto",
    "input",
    "click",
    "assert",
    "menu_click",
    "captcha_input",
    "select_option",
    "select_options",
    "checkbox_toggle",
    "checkbox_set",
    "checkboxes_set",
    "radio_select",
    "radios_select",
    "table_edit",
    "table_delete",
    "table_assert",
    "search",
)

SELECTOR_KINDS = ("text", "field", "button", "xpath", "css", "id")
SCOPES = ("", "dialog", "main")

ASSERT_MODES = ("value_equals", "text_equals", "text_contains", "visible")
TABLE_ASSERT_MODES = ("equals", "contains", "not_equals", "not_contains")
ROW_KINDS = ("index", "text", "contains")
COLUMN_KINDS = ("index", "header")

# Default row-action labels
TABLE_EDIT_LABEL = "编辑"
TABLE_DELETE_LABEL = "删除"

CAPTCHA_BACKENDS = ("tesseract", "disabled")
