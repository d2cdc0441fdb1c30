#!/usr/bin/env python3
"""Start the recipe API with uvicorn.

Usage:
    python scripts/run_server.py                 # localhost:8000
    python scripts/run_server.py --port 8080
    python scripts/run_server.py --reload        # development auto-reload

Pipe the output through scripts/format_logs.py for readable logs.
"""

import argparse

import uvicorn


def main():
  parser = argparse.ArgumentParser(description='Start the recipe API server')
  parser.add_argument('--host', default='127.0.0.1', help='Host to bind to (default: 127.0.0.1)')
  parser.add_argument('--port', type=int, default=8000, help='Port to bind to (default: 8000)')
  parser.add_argument('--reload', action='store_true', help='Enable auto-reload on code changes')
  parser.add_argument('--workers', type=int, default=1, help='Number of worker processes')
  args = parser.parse_args()

  # Each worker process keeps its own performance monitor
  uvicorn.run(
    'recipe_server.app:app',
    host=args.host,
    port=args.port,
    reload=args.reload,
    workers=1 if args.reload else args.workers,
  )


if __name__ == '__main__':
  main()
