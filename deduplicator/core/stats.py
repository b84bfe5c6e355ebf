"""
Scan statistics shared by both detection modes
"""

import time
from dataclasses import dataclass, field
from typing import Dict

@dataclass
class ScanStats:
    """Counters reported in the final summary"""
    # Counts
    files_found: int = 0
    files_skipped: int = 0
    files_digested: int = 0
    files_fingerprinted: int = 0

    # Results
    size_collisions: int = 0
    duplicate_groups: int = 0
    duplicate_files: int = 0
    similar_pairs: int = 0
    wasted_space: int = 0

    # Performance
    start_time: float = field(default_factory=time.time)
    phase_times: Dict[str, float] = field(default_factory=dict)

    def get_duration(self) -> float:
        """Get elapsed time"""
        return time.time() - self.start_time

    def start_phase(self, phase: str) -> None:
        """Mark phase start"""
        self.phase_times[f"{phase}_start"] = time.time()

    def end_phase(self, phase: str) -> None:
        """Mark phase end"""
        start_key = f"{phase}_start"
        if start_key in self.phase_times:
            self.phase_times[f"{phase}_duration"] = time.time() - self.phase_times[start_key]

    def phase_duration(self, phase: str) -> float:
        return self.phase_times.get(f"{phase}_duration", 0.0)
