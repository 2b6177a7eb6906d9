"""HTTP façade for the URL transcriber: Flask app, job registry and job runner."""
