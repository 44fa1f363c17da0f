#!/usr/bin/env python3
"""
Celery worker management script for ClinicHub onboarding.

Starts the workers that drain the onboarding side-effect queue (audit
events and owner notifications) and, optionally, Flower monitoring.
"""

import sys
import subprocess
import signal
from pathlib import Path
from typing import List

# Add the project root to the Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import redis

from clinichub.config.celery_config import CeleryConfig
from clinichub.config.settings import settings

CELERY_APP = "clinichub.tasks.celery_app"


class WorkerManager:
    """Manage Celery workers and related services."""
    
    def __init__(self):
        self.processes: List[subprocess.Popen] = []
        
    def cleanup(self):
        """Clean up all running processes."""
        print("🧹 Cleaning up worker processes...")
        for process in self.processes:
            try:
                process.terminate()
                process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait()
        self.processes = []
        
    def start_redis_check(self) -> bool:
        """Check if the Celery broker is reachable."""
        try:
            redis.from_url(settings.celery_broker_url).ping()
            print("✅ Redis connection successful")
            return True
        except redis.RedisError as e:
            print(f"❌ Redis connection failed: {e}")
            print("💡 Make sure Redis is running: redis-server")
            return False
    
    def _spawn(self, cmd: List[str]) -> subprocess.Popen:
        print(f"   Command: {' '.join(cmd)}")
        process = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            universal_newlines=True,
            bufsize=1
        )
        self.processes.append(process)
        return process
    
    def start_worker(self, 
                    worker_name: str = "onboarding",
                    queues: List[str] = None, 
                    concurrency: int = 2,
                    loglevel: str = "info") -> subprocess.Popen:
        """Start a Celery worker process."""
        if queues is None:
            queues = ["onboarding", "default"]
        
        print(f"🚀 Starting worker '{worker_name}' for queues: {', '.join(queues)}")
        return self._spawn([
            "celery", 
            "-A", CELERY_APP,
            "worker",
            "--hostname", f"{worker_name}@%h",
            "--queues", ",".join(queues),
            "--concurrency", str(concurrency),
            "--loglevel", loglevel,
            "--prefetch-multiplier", "1"
        ])
    
    def start_flower(self, port: int = 5555) -> subprocess.Popen:
        """Start Flower monitoring interface."""
        print(f"🌸 Starting Flower monitoring on port {port}...")
        print(f"   Access at: http://localhost:{port}")
        return self._spawn([
            "celery",
            "-A", CELERY_APP,
            "flower",
            "--port", str(port),
            "--broker", settings.celery_broker_url
        ])
    
    def stream_output(self):
        """Echo worker output until every process has exited."""
        while self.processes:
            for process in self.processes[:]:
                if process.poll() is not None:
                    print(f"⚠️  Process {process.pid} has exited")
                    self.processes.remove(process)
                    continue
                line = process.stdout.readline() if process.stdout else ""
                if line:
                    print(f"[{process.pid}] {line.strip()}")
        print("❌ All processes have exited")
    
    def run(self, profile: dict, with_flower: bool = False):
        """Start a worker sized by ``profile``, one of the ``CeleryConfig`` presets."""
        if not self.start_redis_check():
            return False
        
        try:
            self.start_worker(
                concurrency=profile["worker_concurrency"],
                loglevel=profile["worker_log_level"].lower(),
            )
            if with_flower:
                self.start_flower()
            
            print("⌨️  Press Ctrl+C to stop all services...")
            signal.signal(signal.SIGTERM, lambda s, f: self.cleanup())
            self.stream_output()
            return True
        except KeyboardInterrupt:
            print("\n🛑 Received interrupt signal")
            return True
        finally:
            self.cleanup()


def print_usage():
    """Print script usage information."""
    print("🔧 Celery Worker Management Script")
    print("=" * 40)
    print("Usage: python scripts/run_workers.py [command]")
    print()
    print("Commands:")
    print("  dev       - Start a debug-level onboarding worker and Flower (default)")
    print("  worker    - Start the onboarding worker with production settings")
    print("  check     - Check Redis connection")


def main():
    """Main worker management function."""
    manager = WorkerManager()
    command = sys.argv[1] if len(sys.argv) > 1 else "dev"
    
    if command == "dev":
        ok = manager.run(CeleryConfig.get_development_config(), with_flower=True)
    elif command == "worker":
        ok = manager.run(CeleryConfig.get_production_config())
    elif command == "check":
        ok = manager.start_redis_check()
    elif command in ["help", "-h", "--help"]:
        print_usage()
        ok = True
    else:
        print(f"❌ Unknown command: {command}")
        print_usage()
        ok = False
    
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
