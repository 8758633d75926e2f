"""
Live capture of raw Ethernet frames from a single interface.
"""


import ctypes as c
import logging
from dataclasses import dataclass
from typing import Any, Final

import libpcap as pcap

from arkade.watcher.errors import CaptureError

__all__ = ["LiveCaptureStats", "LiveCapture"]


logger = logging.getLogger(__name__)


# Link type the decoder understands
_DLT_EN10MB: Final = 1


@dataclass
class LiveCaptureStats:
    """
    Statistics for the live capture.

    Attributes
    ----------
    cap : int
        Number of packets received.

    qcap : int
        Number of packets handed over to the reader.

    bcap : int
        Number of bytes handed over to the reader.

    drop : int
        Number of packets dropped because there was no room in the operating
        system's buffer.

    ifdrop : int
        Number of packets dropped by the network interface.
    """

    cap: int = 0
    qcap: int = 0
    bcap: int = 0
    drop: int = 0
    ifdrop: int = 0


class LiveCapture:
    def __init__(
            self,
            interface: str,
            snapshot_length: int = 262144,
            promiscuous: bool = True,
            buffer_timeout: int = 100,
            immediate: bool = True,
            buffer_size: int = 8388608,
    ) -> None:
        """
        Capture every frame seen on `interface`, regardless of its protocol.
        The handle is non-blocking: wait on `fileno()` then call `read()`.
        """
        self.interface = interface
        self.snapshot_length = snapshot_length
        self.promiscuous = promiscuous
        self.buffer_timeout = buffer_timeout
        self.immediate = immediate
        self.buffer_size = buffer_size

        # Capture handle
        self._lpd: Any | None = None

        # Selectable file descriptor of the handle
        self._fd = -1

        # Frames collected by the current `read()` call
        self._frames: list[bytes] = []

        # Must outlive every dispatch call
        self._handler = pcap.pcap_handler(self._process_captured_packet)

        self._stats = LiveCaptureStats()

    def open(self) -> None:
        """
        Open and activate the capture handle.

        Raises
        ------
        CaptureError
            There are several cases at which this method can raise:
                * A capture handle could not be created.
                * Options could not be set on the capture handle.
                * The handle could not be activated.
                * The link type is not Ethernet.
                * The handle has no selectable file descriptor.
        """
        if self._lpd is not None:
            return

        errbuf = c.create_string_buffer(pcap.PCAP_ERRBUF_SIZE)
        device = self.interface.encode("utf-8")
        pd = pcap.create(device, errbuf)

        if not pd:
            message = errbuf.value.decode("utf-8", "replace").lower()
            raise CaptureError(f"failed to create a capture handle: {message}")

        self._set_capture_options(pd)

        status = pcap.activate(pd)
        self._check_activate_status(status, pd)

        # Must come after activation, setting it earlier has no effect
        status = pcap.setnonblock(pd, 1, errbuf)
        if status != 0:
            pcap.close(pd)

            errmsg = "can't set nonblock mode on [%s] device:" % self.interface
            errmsg = "%s %s" % (errmsg, errbuf.value.decode("utf-8", "replace").lower())
            raise CaptureError(errmsg)

        linktype = pcap.datalink(pd)
        if linktype != _DLT_EN10MB:
            pcap.close(pd)

            name = pcap.datalink_val_to_name(linktype)
            name = f"DLT_{name.decode('utf-8')}" if name is not None else str(linktype)
            raise CaptureError(f"device '{self.interface}' has unsupported link type {name}, "
                               f"only ethernet is supported")

        fd = pcap.get_selectable_fd(pd)
        if fd < 0:
            pcap.close(pd)
            raise CaptureError(f"device '{self.interface}' has no selectable file descriptor")

        self._lpd = pd
        self._fd = fd

        logger.debug("capture handle open on %s (fd %d)", self.interface, fd)

    def _set_capture_options(self, ch: Any) -> None:
        options = [
            (pcap.set_snaplen, self.snapshot_length, "snapshot length"),
            (pcap.set_timeout, self.buffer_timeout, "packet buffer timeout"),
            (pcap.set_buffer_size, self.buffer_size, "buffer size"),
        ]

        if self.promiscuous:
            options.append((pcap.set_promisc, 1, "promiscuous mode"))

        if self.immediate:
            options.append((pcap.set_immediate_mode, 1, "immediate mode"))

        for setter, value, description in options:
            status = setter(ch, value)

            if status != 0:
                pcap.close(ch)

                errmsg = "can't set [%s] on [%s] device:" % (description,
                                                             self.interface)
                errmsg = "%s %s" % (
                    errmsg,
                    pcap.statustostr(status).decode("utf-8").lower(),
                )
                raise CaptureError(errmsg)

    def _check_activate_status(self, status: int, ch: Any) -> None:
        """
        Check if the capture handle status is an error status. Warnings are
        logged and otherwise ignored.

        Parameters
        ----------
        status : int
            Status code returned by the `pcap.activate` function.

        ch : pcap_t
            Capture handle for which this check is performed.

        Raises
        ------
        CaptureError
            If the status is an error status.
        """
        if status > 0:
            logger.warning("%s: %s", self.interface,
                           pcap.statustostr(status).decode("utf-8").lower())
            return

        if status < 0:
            err_map = {
                pcap.PCAP_ERROR_ACTIVATED: "handle has already been activated",
                pcap.PCAP_ERROR_NO_SUCH_DEVICE: f"device '{self.interface}' does not exist",
                pcap.PCAP_ERROR_PERM_DENIED: "operation not permitted, permission denied",
                pcap.PCAP_ERROR_PROMISC_PERM_DENIED: "insufficient permissions for promiscuous mode",
                pcap.PCAP_ERROR_IFACE_NOT_UP: f"device '{self.interface}' is not up",
            }

            if status in err_map:
                errmsg = err_map[status]
            else:
                errmsg = pcap.geterr(ch).decode("utf-8", "replace").lower()

            pcap.close(ch)
            raise CaptureError(errmsg)

    def _process_captured_packet(
            self,
            user: Any,
            header: Any,
            data: Any,
    ) -> None:
        pkthdr = c.cast(header, c.POINTER(pcap.pkthdr)).contents
        caplen = pkthdr.caplen

        self._frames.append(c.string_at(data, caplen))

        self._stats.qcap += 1
        self._stats.bcap += caplen

    def fileno(self) -> int:
        if self._lpd is None:
            raise CaptureError("capture handle is not open")
        return self._fd

    def read(self) -> list[bytes]:
        """
        Collect every frame that is ready without blocking.

        Raises
        ------
        CaptureError
            If the capture handle is not open or libpcap reports an error.

        Returns
        -------
        list[bytes]
            Raw frames in arrival order, empty if nothing was ready.
        """
        if self._lpd is None:
            raise CaptureError("capture handle is not open")

        self._frames = []

        status = pcap.dispatch(self._lpd, -1, self._handler, None)

        if status == -1:
            message = "an error occured while capturing packets: %s" % (
                pcap.geterr(self._lpd).decode("utf-8", "replace").lower()
            )
            raise CaptureError(message)

        frames, self._frames = self._frames, []
        return frames

    def close(self) -> None:
        """
        Record statistics and close the capture handle. Safe to call more
        than once.
        """
        if self._lpd is None:
            return

        stats = pcap.stat()
        if pcap.stats(self._lpd, c.byref(stats)) == 0:
            self._stats.cap = stats.ps_recv
            self._stats.drop = stats.ps_drop
            self._stats.ifdrop = stats.ps_ifdrop

        pcap.close(self._lpd)
        self._lpd = None
        self._fd = -1

        logger.info("%s: %d packets received, %d processed, %d dropped, "
                    "%d dropped by interface", self.interface, self._stats.cap,
                    self._stats.qcap, self._stats.drop, self._stats.ifdrop)

    @property
    def stats(self) -> LiveCaptureStats:
        return self._stats
