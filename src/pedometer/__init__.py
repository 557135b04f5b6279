"""
Pedometer - step counting from accelerometer sample streams
"""

__version__ = "0.1.0"

from pedometer.config import Settings
from pedometer.step_detector import StepDetector, process_sample
from pedometer.tracker import TrackingStateMachine

__all__ = ["Settings", "StepDetector", "TrackingStateMachine", "process_sample"]
