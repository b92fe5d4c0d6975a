"""
Custom exceptions for the Smart Detection engine
Engine faults only - a condition that is simply not on screen is never an exception
"""

class DetectionError(Exception):
    """Base exception for all detection engine errors"""
    pass

class SessionStateError(DetectionError):
    """Exception raised when an operation is called out of order"""
    pass

class ImageProcessingError(DetectionError):
    """Exception raised when a bitmap cannot be read or converted"""
    pass

class OCRError(DetectionError):
    """Exception raised for OCR engine errors"""
    pass

class DetectionCancelledError(DetectionError):
    """Exception raised when a detection is aborted through its cancel token"""
    pass

class ConfigurationError(DetectionError):
    """Exception raised for configuration errors"""
    pass
