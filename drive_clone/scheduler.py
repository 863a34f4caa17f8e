"""
Delayed re-invocation of the clone job.

After an interrupted execution the job asks to be run again later. Auto
mode starts a detached process that waits out the delay; manual mode only
tells the operator what to do.
"""

import json
import logging
import os
import subprocess
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import psutil

logger = logging.getLogger(__name__)


class ManualScheduler:
    """Prints resume instructions; nothing is re-invoked automatically"""

    def __init__(self, command: Optional[List[str]] = None):
        self.command = command or ['python', '-m', 'drive_clone', 'run']

    def schedule(self, delay: float):
        next_run = datetime.now() + timedelta(seconds=delay)

        print("\n🎯 MANUAL RESUME INSTRUCTIONS:")
        print("=" * 80)
        print(f"1️⃣ RESUME AFTER: {next_run.strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"2️⃣ RUN: {' '.join(self.command)}")
        print("   → Progress is picked up from the saved state")
        print("=" * 80)

    def clear_stale(self):
        pass


class SubprocessScheduler:
    """
    Re-run the job in a detached child process after a delay.

    A JSON marker file remembers the pending child. Only one re-invocation
    may be pending per job: while the marker names a live process other
    than this one, `schedule` does nothing.
    """

    def __init__(self, job_name: str, command: List[str], marker_dir: str = '.'):
        self.job_name = job_name
        self.command = command
        self.marker_path = os.path.join(marker_dir, f"{job_name}.trigger.json")

    def _read_marker(self) -> Optional[Dict[str, Any]]:
        if not os.path.exists(self.marker_path):
            return None
        try:
            with open(self.marker_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ Ignoring unreadable trigger marker {self.marker_path}: {e}")
            return None

    def _write_marker(self, marker: Dict[str, Any]):
        temp_file = self.marker_path + '.tmp'
        with open(temp_file, 'w', encoding='utf-8') as f:
            json.dump(marker, f, indent=2)
        os.replace(temp_file, self.marker_path)

    def pending(self) -> Optional[Dict[str, Any]]:
        """Marker of a live re-invocation other than this process"""
        marker = self._read_marker()
        if marker is None:
            return None
        pid = marker.get('pid')
        if pid == os.getpid() or not pid or not psutil.pid_exists(pid):
            return None
        return marker

    def schedule(self, delay: float):
        existing = self.pending()
        if existing is not None:
            logger.info(f"⏰ Re-run already pending (pid {existing['pid']}), not scheduling another")
            return

        args = self.command + ['--start-delay', str(delay)]
        proc = subprocess.Popen(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True
        )

        self._write_marker({
            'job': self.job_name,
            'pid': proc.pid,
            'scheduled_at': datetime.now().isoformat(),
            'due_at': datetime.fromtimestamp(time.time() + delay).isoformat()
        })
        logger.warning(f"⏰ Scheduled re-run in {delay}s (pid {proc.pid})")

    def clear_stale(self):
        """Drop a marker left by this run or by a process that has exited"""
        marker = self._read_marker()
        if marker is None:
            if os.path.exists(self.marker_path):
                os.remove(self.marker_path)
            return

        pid = marker.get('pid')
        if pid == os.getpid() or not pid or not psutil.pid_exists(pid):
            os.remove(self.marker_path)
            logger.info(f"🧹 Cleared trigger marker {self.marker_path}")
        else:
            logger.warning(f"⚠️ Trigger marker points at running process {pid}, leaving it")

    def cancel_pending(self) -> bool:
        """
        Terminate a pending re-invocation and drop its marker.

        Returns:
            bool: True if a live re-run was terminated
        """
        marker = self.pending()
        if marker is None:
            self.clear_stale()
            return False

        pid = marker['pid']
        terminated = False
        try:
            psutil.Process(pid).terminate()
            terminated = True
        except psutil.NoSuchProcess:
            logger.info(f"🧹 Pending re-run {pid} already exited")
        except psutil.AccessDenied:
            logger.warning(f"⚠️ Cannot terminate pending re-run {pid}; stop it by hand")
            return False

        if terminated:
            logger.warning(f"🛑 Terminated pending re-run (pid {pid})")
        os.remove(self.marker_path)
        return terminated
