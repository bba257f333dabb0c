"""
Error types raised by the rendering and export engines.

Configuration and asset problems are recovered where they happen (logged,
never raised). Anything below is fatal for the operation that raised it.
"""


class ExportError(Exception):
    """Capture or export failed; no artifact was produced."""


class ElementNotFoundError(ExportError):
    """The capture target is not part of the rendered document."""

    def __init__(self, element_id: str):
        self.element_id = element_id
        super().__init__(f'Element with id "{element_id}" not found')


class RasterizationError(ExportError):
    """The rasterizer failed while capturing the element."""


class UnknownSettingError(KeyError):
    """A settings update named a key the template settings do not have."""


class PresetNotFoundError(KeyError):
    """No preset with the requested id exists in the catalog."""
