#!/usr/bin/env python3
"""
Static-File HTTP Server Using Socket Programming

Serves files from a configured web root, one request per connection:
- GET only (other methods answered with 501)
- Path traversal rejection (400)
- Directory index fallback and fixed error pages (404)
- gzip content encoding when the client accepts it
- One access-log line per request

Python Version: 3.8+
"""

import signal
import sys

from static_server.config import ConfigError, load_config, parse_overrides
from static_server.server import HTTPServer, setup_logging


def main(argv=None):
    """
    Main entry point for the HTTP server.
    Parses -Dkey=value overrides, loads configuration and starts the server.
    """
    argv = sys.argv[1:] if argv is None else argv

    try:
        overrides = parse_overrides(argv)
        config = load_config(overrides)
    except ConfigError as e:
        print(f"Error: {e}")
        sys.exit(1)

    setup_logging(config)
    server = HTTPServer(config)

    # Setup signal handlers for shutdown
    def _signal_handler(signum, frame):
        server.logger.info(f"Received signal {signum}, shutting down...")
        server.running = False

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        print(f"Starting HTTP server on {config.bind_address}:{config.bind_port} "
              f"with {config.max_workers} workers...", file=sys.stderr)
        print("Press Ctrl+C to stop the server", file=sys.stderr)
        server.start()
    except OSError as e:
        print(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()


"""
===============================================================================
README - Static-File HTTP Server
===============================================================================

## Build and Run Instructions

### Prerequisites
- Python 3.8 or higher
- No runtime dependencies (standard library only); pytest for the tests

### Directory Setup
```
project/
├── server.py
├── server.properties       # Default configuration
├── public/                 # web.root
│   ├── index.html
│   └── css/main.css
└── error_pages/            # server.root
    ├── 400.html
    ├── 404.html
    └── 501.html
```

### Running the Server
```bash
# Configuration from server.properties
python server.py

# Override any property
python server.py -Dserver.port=9000 -Dweb.root=/srv/www

# Use another properties file
python server.py -Dconfig.file=/etc/static-server.properties
```

### Configuration Keys
| Key                       | Default             | Meaning                          |
|---------------------------|---------------------|----------------------------------|
| `server.root`             | `error_pages`       | Directory with 400/404/501 pages |
| `web.root`                | `public`            | Directory files are served from  |
| `server.name`             | `127.0.0.1`         | Bind address                     |
| `server.port`             | `8080`              | Bind port                        |
| `server.response.version` | `StaticServer v1.0` | `Server:` header value           |
| `server.read.timeout`     | `30`                | Seconds to wait for the request  |
| `server.workers`          | `10`                | Worker thread pool size          |
| `server.mime.types`       | (none)              | Extra `mime.types` file          |
| `server.log.file`         | (none)              | Also write diagnostics here      |
| `server.log.level`        | `INFO`              | Diagnostic log level             |

### Testing the Server
```bash
curl -i http://localhost:8080/
curl -i --compressed http://localhost:8080/css/main.css
curl -i --path-as-is http://localhost:8080/../server.py   # 400
curl -i -X POST http://localhost:8080/                   # 501
pytest
```

## Logging
- Diagnostics (startup, errors, rejected paths) go to stderr and optionally
  `server.log.file`.
- Access lines go to stdout:
  `127.0.0.1 [Mon, 19 Oct 2026 10:00:00 GMT] "GET" 200 OK curl/8.5.0 /`

## Known Limitations
- One request per connection; no keep-alive, request bodies, ranges or caching
  headers.
- Files are read fully into memory before sending.
- No TLS.
"""
