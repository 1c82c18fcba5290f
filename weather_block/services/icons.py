from weather_block.utils.sanitize import sanitize_text_field

ICON_URL_TEMPLATE = "https://openweathermap.org/img/wn/{icon_code}@{size}.png"
ICON_SIZES = ("2x", "4x")
DEFAULT_ICON_SIZE = "2x"


def get_icon_url(icon_code: str, size: str = DEFAULT_ICON_SIZE) -> str:
    """Build the provider-hosted image URL for a weather icon code.

    Unknown sizes fall back to 2x.
    """
    icon_code = sanitize_text_field(icon_code)
    if size not in ICON_SIZES:
        size = DEFAULT_ICON_SIZE

    return ICON_URL_TEMPLATE.format(icon_code=icon_code, size=size)
