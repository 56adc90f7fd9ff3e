"""Terraform execution."""

import json
import os
import subprocess
import time
from pathlib import Path
from typing import Dict, Any, Optional, List


class TerraformRuntime:
    """Runs terraform commands in one working directory."""

    def __init__(
        self,
        working_dir: str,
        env_overrides: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
        binary: str = 'terraform',
    ):
        """
        Initialize Terraform runtime.

        Args:
            working_dir: Directory containing Terraform configuration
            env_overrides: Variables overlaid on the inherited environment for every command
            timeout: Per-command timeout in seconds (None blocks until terraform exits)
            binary: Terraform executable name or path
        """
        self.working_dir = Path(working_dir)
        self.env_overrides = dict(env_overrides or {})
        self.timeout = timeout
        self.binary = binary

    def init(self) -> Dict[str, Any]:
        """Run terraform init."""
        return self._run_command([self.binary, 'init', '-input=false', '-no-color'])

    def apply(self, variables: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Run terraform apply with auto-approve.

        Args:
            variables: Values passed as -var flags

        Returns:
            Result dictionary with returncode, stdout, stderr, success
        """
        cmd = [self.binary, 'apply', '-auto-approve', '-input=false', '-no-color']
        cmd.extend(_var_flags(variables))
        return self._run_command(cmd)

    def destroy(self, variables: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Run terraform destroy with auto-approve.

        Args:
            variables: Values passed as -var flags (destroy needs the same inputs as apply)

        Returns:
            Result dictionary with returncode, stdout, stderr, success
        """
        cmd = [self.binary, 'destroy', '-auto-approve', '-input=false', '-no-color']
        cmd.extend(_var_flags(variables))
        return self._run_command(cmd)

    def output(self) -> Dict[str, Any]:
        """
        Read all root module outputs.

        Returns:
            Result dictionary; on success ``outputs`` maps names to plain values
        """
        result = self._run_command([self.binary, 'output', '-json', '-no-color'])

        if result['success']:
            try:
                raw = json.loads(result['stdout'] or '{}')
            except json.JSONDecodeError as e:
                result['success'] = False
                result['stderr'] = f'Could not parse terraform output: {e}'
                return result
            result['outputs'] = {
                name: entry.get('value') if isinstance(entry, dict) else entry
                for name, entry in raw.items()
            }

        return result

    def build_env(self) -> Dict[str, str]:
        """Environment for child processes; os.environ itself is left untouched."""
        env = dict(os.environ)
        env.update(self.env_overrides)
        return env

    def _run_command(self, cmd: List[str]) -> Dict[str, Any]:
        """
        Run a terraform command.

        Args:
            cmd: Command and arguments

        Returns:
            Dictionary with returncode, stdout, stderr, success, duration_seconds
        """
        start = time.monotonic()
        try:
            result = subprocess.run(
                cmd,
                cwd=self.working_dir,
                env=self.build_env(),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
            return {
                'returncode': result.returncode,
                'stdout': result.stdout,
                'stderr': result.stderr,
                'success': result.returncode == 0,
                'duration_seconds': time.monotonic() - start,
            }

        except subprocess.TimeoutExpired:
            return {
                'returncode': -1,
                'stdout': '',
                'stderr': f'Command timed out after {self.timeout} seconds',
                'success': False,
                'duration_seconds': time.monotonic() - start,
            }
        except FileNotFoundError:
            return {
                'returncode': -1,
                'stdout': '',
                'stderr': f'Command not found: {cmd[0]}',
                'success': False,
                'duration_seconds': time.monotonic() - start,
            }


def _var_flags(variables: Optional[Dict[str, str]]) -> List[str]:
    flags: List[str] = []
    for key, value in (variables or {}).items():
        flags.extend(['-var', f'{key}={value}'])
    return flags
