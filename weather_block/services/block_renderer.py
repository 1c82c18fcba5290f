import logging
from html import escape

from weather_block.models.weather import BlockAttributes, WeatherRecord
from weather_block.services.icons import get_icon_url
from weather_block.services.weather_service import WeatherService
from weather_block.utils.exceptions import WeatherBlockError
from weather_block.utils.sanitize import sanitize_text_field

logger = logging.getLogger(__name__)

TEMPERATURE_UNITS = {"metric": "°C", "imperial": "°F"}

BLOCK_TEMPLATE = """<div class="weather-block weather-block--theme-{display_mode}" data-location="{data_location}" data-nonce="{nonce}">
	<div class="weather-block__header">
		<h3 class="weather-block__location">{location}, {country}</h3>
	</div>
	<div class="weather-block__content">
		<div class="weather-block__temperature">
			<img src="{icon_url}" alt="{icon_alt}" class="weather-block__icon" />
			<span class="weather-block__temp">{temperature}{temperature_unit}</span>
		</div>
		<div class="weather-block__details">
			<p class="weather-block__description">{description}</p>
			<p class="weather-block__humidity">Humidity: {humidity}%</p>
		</div>
	</div>
</div>"""


def render_error(message: str) -> str:
    return f'<div class="weather-block weather-block--error">{escape(message)}</div>'


def render_record(
    record: WeatherRecord, location: str, display_mode: str, nonce: str = ""
) -> str:
    """Render a weather record as block markup"""
    description = record.description
    return BLOCK_TEMPLATE.format(
        display_mode=escape(display_mode),
        data_location=escape(location),
        nonce=escape(nonce),
        location=escape(record.location),
        country=escape(record.country),
        icon_url=escape(get_icon_url(record.icon)),
        icon_alt=escape(description),
        temperature=escape(f"{record.temperature:,.1f}"),
        temperature_unit=TEMPERATURE_UNITS.get(record.units, "°C"),
        description=escape(description[:1].upper() + description[1:]),
        humidity=int(record.humidity),
    )


async def render_weather_block(
    attributes: BlockAttributes, service: WeatherService, nonce: str = ""
) -> str:
    """
    Server-side render of the weather block.

    Returns an empty string when no location is set, and an error box when
    the lookup fails.
    """
    if not attributes.location:
        return ""

    location = sanitize_text_field(attributes.location)
    units = sanitize_text_field(attributes.units) or "metric"
    display_mode = sanitize_text_field(attributes.displayMode) or "auto"

    try:
        record = await service.get_weather_data(location, units)
    except WeatherBlockError as e:
        logger.warning(f"Weather block render failed for {location}: {e.error_code}")
        return render_error(e.message)

    return render_record(record, location, display_mode, nonce)
