"""
Playback of synthesized audio through ffplay or mpv
"""

import asyncio
import shutil
from typing import List, Optional

from ..errors import OutputError


def find_player() -> Optional[List[str]]:
    """Command line of a player that reads encoded audio from stdin"""
    # Prefer ffplay, fallback to mpv
    if shutil.which("ffplay"):
        return ["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet", "-"]
    if shutil.which("mpv"):
        return ["mpv", "--no-video", "--no-terminal", "-"]
    return None


class AudioPlayer:
    """Play encoded audio (mp3/wav) through an external player process"""

    def __init__(self, command: Optional[List[str]] = None):
        self.command = command
        self.proc: Optional[asyncio.subprocess.Process] = None

    async def play(self, audio_data: bytes):
        """
        Play audio and wait for the player to exit.

        Raises:
            OutputError: if no player is installed or playback fails
        """
        command = self.command or find_player()
        if command is None:
            raise OutputError("No audio player found (install ffplay or mpv)")

        proc = await asyncio.create_subprocess_exec(
            *command,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        self.proc = proc

        try:
            if proc.stdin:
                proc.stdin.write(audio_data)
                await proc.stdin.drain()
                proc.stdin.close()
            returncode = await proc.wait()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise OutputError(f"Audio player closed early: {e}")
        finally:
            self.proc = None
            if proc.returncode is None:
                proc.kill()
                await proc.wait()

        if returncode != 0:
            raise OutputError(f"Audio player exited with status {returncode}")

    def stop(self):
        """Kill the running player, if any"""
        proc = self.proc
        if proc is not None and proc.returncode is None:
            proc.kill()
