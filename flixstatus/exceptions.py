"""Excepciones del servicio de estado.

Los probes lanzan ``ProbeError``; las rutas y el colector las convierten en
resultados estructurados, nunca llegan al cliente como 500 sin manejar.
"""


class FlixStatusError(Exception):
    """Base para todos los errores de flixstatus."""

    pass


class ProbeError(FlixStatusError):
    """Una dependencia (DB, storage, transcoder, CDN) no respondió bien."""

    pass


class ProbeTimeout(ProbeError):
    """La espera acotada de un probe expiró."""

    def __init__(self, seconds: float):
        self.seconds = seconds
        super().__init__(f"Timeout ({seconds:g}s)")
