"""Exception hierarchy for cnoectl.

Every error carries the process exit code the CLI terminates with.
"""


class CnoectlError(Exception):
    """Base class for all cnoectl errors."""
    exit_code = 1


class ConfigurationError(CnoectlError):
    """The configuration document is missing or invalid."""


class MissingFile(ConfigurationError):
    pass


class MissingField(ConfigurationError):
    pass


class CredentialAcquisitionError(CnoectlError):
    """No usable kubeconfig could be produced."""


class CredentialSourceUnavailable(CredentialAcquisitionError):
    exit_code = 2


class RemoteFetchFailed(CredentialAcquisitionError):
    exit_code = 3


class ProviderUnavailable(CredentialAcquisitionError):
    pass


class GenerationFailed(CredentialAcquisitionError):
    pass


class ReadinessTimeoutError(CnoectlError):
    """A blocking readiness stage ran out of time."""


class SecretWriteError(CnoectlError):
    """A secret store rejected both create and update."""


class SecretWriteFailed(SecretWriteError):
    pass


class InputDataError(CnoectlError):
    """The private secrets directory cannot produce a payload."""


class DirectoryMissing(InputDataError):
    pass


class NoInputFiles(InputDataError):
    pass


class MissingTool(CnoectlError):
    """A required command line tool is not installed."""
    exit_code = 4


class InvalidChoice(CnoectlError):
    """An interactive menu received an answer outside its options."""
