class ScreenTranslateError(Exception):
    """Base class for errors raised inside a pipeline pass"""


class CaptureFailed(ScreenTranslateError):
    def __init__(self, message: str = "Failed to capture screenshot"):
        super().__init__(message)


class NoOcrProviderAvailable(ScreenTranslateError):
    pass


class NoTranslateProviderAvailable(ScreenTranslateError):
    pass


class OcrProviderError(ScreenTranslateError):
    pass


class TranslateProviderError(ScreenTranslateError):
    pass
