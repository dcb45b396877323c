"""
Custom exceptions for Tower Farmer
"""

class BotError(Exception):
    """Base exception for all bot-related errors"""
    pass

class ADBError(BotError):
    """Exception raised for ADB transport errors"""
    pass

class ConnectionTimeoutError(ADBError):
    """Exception raised when an ADB command times out"""
    pass

class DeviceNotFoundError(BotError):
    """Exception raised when no devices are found"""
    pass

class ImageRecognitionError(BotError):
    """Exception raised for image recognition errors"""
    pass

class ConfigurationError(BotError):
    """Exception raised for configuration errors"""
    pass

class TemplateNotFoundError(ConfigurationError):
    """Exception raised when a template asset is missing on disk"""
    pass

class OperationCancelledError(BotError):
    """Raised at a suspension point once its cancellation token has fired"""
    pass

class ChannelCompletedError(OperationCancelledError):
    """Raised by a frame broadcaster that has been completed"""
    pass
