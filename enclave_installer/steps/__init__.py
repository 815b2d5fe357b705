from .step_10_detect_host import DetectHostStep
from .step_20_resolve_release import ResolveReleaseStep
from .step_30_install_dependencies import InstallDependenciesStep
from .step_40_install_agent import InstallAgentStep
from .step_50_enrol import EnrolStep
from .step_60_start_fabric import StartFabricStep

__all__ = [
    "DetectHostStep",
    "ResolveReleaseStep",
    "InstallDependenciesStep",
    "InstallAgentStep",
    "EnrolStep",
    "StartFabricStep",
]
