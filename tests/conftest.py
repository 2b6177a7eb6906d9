import os
import stat
import sys
import textwrap

import pytest

# Ensure repository root is on sys.path so the top-level modules are importable
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


@pytest.fixture
def make_tool(tmp_path):
    """Write an executable Python script standing in for yt-dlp or ffmpeg."""
    bin_dir = tmp_path / 'bin'
    bin_dir.mkdir()

    def _make(name, body):
        path = bin_dir / name
        path.write_text(f"#!{sys.executable}\nimport sys\n" + textwrap.dedent(body))
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)

    return _make


FAKE_YT_DLP = """
out = sys.argv[sys.argv.index('-o') + 1]
print('[youtube] abc: Downloading webpage', flush=True)
print('[download] Destination: ' + out, flush=True)
for line in ['[download]   0.0% of 10.00MiB at 1.00MiB/s ETA 00:10',
             '[download]  45.6% of 10.00MiB at 1.00MiB/s ETA 00:05',
             '[download]  45.9% of 10.00MiB at 1.00MiB/s ETA 00:05',
             '[download] 100% of 10.00MiB in 00:00:10']:
    print(line, flush=True)
with open(out, 'wb') as f:
    f.write(b'webm')
"""

FAKE_FFMPEG = """
out = sys.argv[-1]
sys.stderr.write('Input #0, matroska,webm, from in.webm:\\n')
sys.stderr.write('  Duration: 00:01:00.00, start: 0.000000, bitrate: 128 kb/s\\n')
sys.stderr.write('size=      1kB time=00:00:30.00 bitrate= 256.0kbits/s speed=60x\\r')
sys.stderr.write('size=      2kB time=00:01:00.00 bitrate= 256.0kbits/s speed=60x\\n')
with open(out, 'wb') as f:
    f.write(b'RIFF')
"""

FAILING_TOOL = """
for arg in sys.argv:
    if arg.endswith('.webm') and '-o' in sys.argv:
        open(arg, 'wb').write(b'partial')
print('ERROR: unable to download', flush=True)
sys.exit(1)
"""


@pytest.fixture
def fake_yt_dlp(make_tool):
    return make_tool('yt-dlp', FAKE_YT_DLP)


@pytest.fixture
def fake_ffmpeg(make_tool):
    return make_tool('ffmpeg', FAKE_FFMPEG)


@pytest.fixture
def failing_tool(make_tool):
    return make_tool('failing-tool', FAILING_TOOL)


@pytest.fixture
def cached_model(tmp_path):
    """A data dir whose models/ cache already holds the checkpoint."""
    data_dir = tmp_path / 'data'
    models_dir = data_dir / 'models'
    models_dir.mkdir(parents=True)
    (models_dir / 'tiny.pt').write_bytes(b'checkpoint')
    return data_dir
