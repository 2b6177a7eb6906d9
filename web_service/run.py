#!/usr/bin/env python3
"""
URL Transcriber - HTTP service
Accepts media URLs and reports transcription job progress
"""

if __name__ == '__main__':
    import os
    import sys

    # Make the top-level modules importable when started as a script
    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

    from web_service.app import create_app

    app = create_app()
    host = app.config['HOST']
    port = app.config['PORT']

    print("=" * 60)
    print("URL Transcriber - HTTP service")
    print("=" * 60)
    print(f"Starting server on http://{host}:{port}")
    print("Press CTRL+C to stop")
    print("=" * 60)

    app.extensions['job_runner'].start()
    try:
        app.run(host=host, port=port, threaded=True, use_reloader=False)
    finally:
        app.extensions['job_runner'].stop()
