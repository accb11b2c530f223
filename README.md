# castrec

castrec records terminal sessions into asciicast files, replays them in your
terminal, joins several recordings into one, converts recordings to raw
terminal output and uploads them to a compatible sharing server.

## Installation

```
pip install castrec
```

castrec runs on POSIX systems. Recording needs a pseudo-terminal and a UTF-8
or ASCII locale.

## Usage

The global options `--server-url URL` and `-q/--quiet` (suppress the `:::`
diagnostic messages) apply to every command. On an error castrec prints
`Error: ...` to standard error and exits with status 1.

### Recording

```
castrec rec demo.cast
```

Press `Ctrl+D` or type `exit` to end the recording. The session runs
`/bin/sh -c COMMAND`, where the command is `-c COMMAND`, else the configured
one, else `$SHELL`, else `/bin/sh`. The recorded command sees
`CASTREC_REC=1` in its environment.

Options:

- `-c/--command COMMAND` records a command instead of your shell
- `-I/--input` (alias `--stdin`) records keyboard input as well
- `-t/--title TITLE` sets the recording's title
- `-i/--idle-time-limit SECS` stores an idle time limit in the header
- `--env VARS` comma-separated environment variables to save (default `TERM,SHELL`)
- `-a/--append` appends to an existing recording, continuing its timeline
- `--overwrite` replaces an existing file (an existing empty file is always overwritten)
- `-f/--format {asciicast,raw}` chooses the file format; `raw` writes only the
  terminal output, preceded by a resize escape sequence
- `--headless` records without using the terminal for input and output
- `--tty-size COLSxROWS` overrides the terminal size (`COLSx` or `xROWS` override one side)
- `--filename TEMPLATE` names the file when the path given is a directory

Without `--append` or `--overwrite`, recording to an existing non-empty file
fails. When the path is a directory, the filename is built from a `strftime`
template (default `%Y-%m-%d-%H-%M-%S-{pid}.cast`; `{user}` and `{hostname}`
are also replaced).

During recording, `Ctrl+\` pauses and resumes capture. A prefix key and an
add-marker key can be set in the configuration; with a prefix key set, the
other keys act only right after it.

Notifications about pausing, resuming and markers go to tmux (inside tmux),
`notify-send` or `osascript`, whichever is found first, or to a custom shell
command that receives the message in `$TEXT`.

### Playback

```
castrec play demo.cast
castrec play -s 2 -i 1 demo.cast
```

Options: `-s/--speed`, `-i/--idle-time-limit SECS` (overrides the one in the
file), `-l/--loop` and `-m/--pause-on-markers`. Only local files can be
played. While playing, `space` pauses and resumes, `.` steps one event while
paused, `]` jumps to the next marker while paused, and `Ctrl+C` quits.

### Other commands

```
castrec cat part1.cast part2.cast > full.cast
castrec convert demo.cast demo.raw -f raw
castrec upload demo.cast
castrec auth
```

- `cat` writes the recordings to standard output as one recording, with the
  first file's header and each file's events shifted to follow the previous one.
- `convert` writes a local recording as asciicast (the default) or raw output;
  `--overwrite` replaces an existing non-empty target.
- `upload` sends a recording to the server and prints the server's message or
  the recording's URL.
- `auth` prints the URL that links this machine's install id with your server
  account.

If no server URL is configured, castrec asks for one and saves it to
`defaults.toml` in the configuration directory.

## Configuration

Settings are read, later ones winning, from `/etc/castrec/config.toml`, then
`defaults.toml` and `config.toml` in the configuration directory, then from
`CASTREC_*` environment variables, then from `--server-url`. The
configuration directory is `$CASTREC_CONFIG_HOME`, else
`$XDG_CONFIG_HOME/castrec`, else `~/.config/castrec`. It also holds the
`install-id` file.

```toml
[server]
url = "https://cast.example.com"

[cmd.rec]
input = true
idle_time_limit = 2.0
pause_key = "^p"
add_marker_key = "C-m"

[cmd.play]
speed = 1.5
step_key = "n"

[notifications]
enabled = true
command = "logger \"$TEXT\""
```

Each setting has an environment variable named after its path, for example
`CASTREC_SERVER_URL`, `CASTREC_CMD_REC_INPUT` or
`CASTREC_NOTIFICATIONS_ENABLED`; `CASTREC_API_URL` is used when
`CASTREC_SERVER_URL` is not set. Keys are given as a single character, `^x`,
`C-x` or `C+x`; an empty string disables a key.

## What castrec does not do

- `castrec stream` is accepted on the command line but exits with an error:
  there is no built-in HTTP server and no relaying of live sessions. The
  `castrec.alis` module only provides the binary encoding of live stream
  events and the reconnect-delay and close-code rules.
- There is no plain-text (`txt`) output: choosing `-f txt`, or a `.txt`
  file name without `-f`, makes `rec` and `convert` fail.
- Recordings cannot be played or converted from URLs.

## Library use

The file format modules can be used on their own:

```python
from castrec.asciicast import open_from_path
from castrec.events import limit_idle_time

cast = open_from_path("demo.cast")
for event in limit_idle_time(cast.events, 2.0):
    print(event.time, event.kind, event.data)
```

`castrec.v2.Encoder` and `castrec.encoders` write recordings back out, and
`castrec.asciicast.open_lines` reads version 1 or version 2 recordings from
any iterable of lines.