# --- Standard library imports ---
import time
import shutil
import subprocess
from typing import Callable

# --- Project imports ---
from .logger import get_logger


logger = get_logger("interface")

DHCP_CLIENTS = ("dhclient", "dhcpcd")


class InterfaceResetter:
    """
    Cycle a network interface: drop the DHCP lease, link down, flush, link up,
    request a new lease, then verify an IPv4 address was assigned.

    This class performs NO reachability checks. Escalation and rate limiting
    are handled upstream by the recovery controller. Safe to call repeatedly.
    """

    def __init__(
        self,
        use_sudo: bool = True,
        command_timeout: float = 30,
        sleep: Callable[[float], None] = time.sleep,
        which: Callable[[str], str | None] = shutil.which,
    ):
        self.use_sudo = use_sudo
        self.command_timeout = command_timeout
        self.sleep = sleep
        self.which = which

    def _run(self, *args: str, privileged: bool = True) -> subprocess.CompletedProcess | None:
        cmd = list(args)
        if privileged and self.use_sudo:
            cmd.insert(0, "sudo")
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.command_timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error(f"Command timed out after {self.command_timeout}s: {' '.join(cmd)}")
        except OSError as e:
            logger.error(f"Command failed to start: {' '.join(cmd)} ({e.__class__.__name__})")
        return None

    def _ok(self, *args: str, privileged: bool = True) -> bool:
        result = self._run(*args, privileged=privileged)
        return result is not None and result.returncode == 0

    def exists(self, interface: str) -> bool:
        return self._ok("ip", "link", "show", interface, privileged=False)

    def list_interfaces(self) -> list[str]:
        result = self._run("ip", "-o", "link", "show", privileged=False)
        if result is None or result.returncode != 0:
            return []
        # "2: wlan0: <BROADCAST,...>"
        return [
            line.split(":")[1].strip()
            for line in result.stdout.splitlines()
            if line.count(":") >= 2
        ]

    def detect_dhcp_client(self) -> str | None:
        for client in DHCP_CLIENTS:
            if self.which(client):
                return client
        return None

    def has_address(self, interface: str) -> bool:
        result = self._run("ip", "addr", "show", "dev", interface, privileged=False)
        return result is not None and "inet " in (result.stdout or "")

    def bring_up(self, interface: str) -> bool:
        return self._ok("ip", "link", "set", interface, "up")

    def reset(self, interface: str) -> bool:
        """
        Execute one full interface reset.

        Returns:
            True if the interface came back with an IPv4 address.
        """
        logger.info(f"🔁 Attempting to restart {interface}...")

        if not self.exists(interface):
            logger.error(f"Interface {interface} does not exist")
            return False

        # Kill any hanging DHCP client processes
        self._run("pkill", "dhclient")
        self.sleep(1)

        dhcp_client = self.detect_dhcp_client()
        if dhcp_client == "dhclient":
            logger.info("Releasing DHCP lease with dhclient")
            self._run("dhclient", "-v", "-r", interface)
        elif dhcp_client == "dhcpcd":
            logger.info("Releasing DHCP lease with dhcpcd")
            self._run("dhcpcd", "-k", interface)
        else:
            logger.warning("No DHCP client found")
        self.sleep(2)

        logger.info("Bringing interface down")
        if not self._ok("ip", "link", "set", interface, "down"):
            logger.error("Failed to bring interface down")
            return False
        self.sleep(2)

        logger.info("Flushing IP address")
        if not self._ok("ip", "addr", "flush", "dev", interface):
            logger.warning("Failed to flush IP address")

        logger.info("Bringing interface up")
        if not self.bring_up(interface):
            logger.error("Failed to bring interface up")
            return False
        self.sleep(5)

        if dhcp_client:
            logger.info(f"Requesting new IP with {dhcp_client}")
            args = ("dhclient", "-v", interface) if dhcp_client == "dhclient" else ("dhcpcd", interface)
            if not self._ok(*args):
                logger.error(f"{dhcp_client} failed to get IP")
        else:
            logger.info("No DHCP client available. Waiting for system to assign IP.")
            self.sleep(10)

        # Wait for interface to stabilize
        self.sleep(5)

        if not self.has_address(interface):
            logger.warning(f"No IP address assigned to {interface} after restart")
            return False

        logger.info(f"IP address successfully assigned to {interface}")
        return True
