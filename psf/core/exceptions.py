"""
Custom exceptions for the PSF toolkit
"""

class PSFError(Exception):
    """Base exception for the PSF toolkit"""
    pass

class ConfigurationError(PSFError):
    """Configuration-related errors"""
    pass

class ValidationError(PSFError):
    """Malformed probe input (profile, expectations, request payload)"""
    pass

class OracleError(PSFError):
    """Failures talking to the semantic classifier oracle"""
    pass

class TransportError(OracleError):
    """Oracle unreachable, HTTP error, or undecodable server reply"""
    pass

class ParseError(OracleError):
    """Classifier text could not be parsed into a JSON object"""
    pass
