import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor

from errors import PipelineError
from processor import run_pipeline


class JobRunner:
    """
    Runs jobs as coroutines on an event loop living in a background thread.

    Flask request threads hand work over with submit(); whisper inference goes to a
    single dedicated worker thread so it never stalls the loop serving other jobs.
    """

    def __init__(self, registry, settings, pipeline=run_pipeline):
        self.registry = registry
        self.settings = settings
        self.pipeline = pipeline
        self.loop = None
        self._thread = None
        self._stopped = False
        self._inference = ThreadPoolExecutor(max_workers=1, thread_name_prefix='inference')
        self._lock = threading.Lock()

    def _run_loop(self):
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def _start_locked(self):
        if self._thread is None:
            self.loop = asyncio.new_event_loop()
            self._thread = threading.Thread(target=self._run_loop, name='job-runner', daemon=True)
            self._thread.start()

    def start(self):
        with self._lock:
            if not self._stopped:
                self._start_locked()

    def stop(self):
        """Stop the loop and close it. Jobs submitted afterwards fail immediately."""
        with self._lock:
            self._stopped = True
            if self._thread is not None:
                self.loop.call_soon_threadsafe(self.loop.stop)
                self._thread.join()
                self.loop.close()
                self._thread = None
        self._inference.shutdown(wait=False)

    def submit(self, job_id, url):
        """
        Schedule a job; returns a concurrent.futures.Future resolving when it ends.

        After stop() the job is marked failed right away and None is returned.
        """
        with self._lock:
            if self._stopped:
                logging.error(f"Job {job_id} rejected: job runner stopped")
                self.registry.update_status(job_id, 'failed: job runner stopped')
                return None
            self._start_locked()
            return asyncio.run_coroutine_threadsafe(self.run_job(job_id, url), self.loop)

    async def run_job(self, job_id, url):
        def on_status(status):
            self.registry.update_status(job_id, status)

        try:
            result = await self.pipeline(url, self.settings, on_status, self._inference)
        except PipelineError as e:
            logging.error(f"Job {job_id} failed: {e}")
            self.registry.update_status(job_id, f"failed: {e}")
        except Exception as e:
            logging.exception(f"Job {job_id} failed with an unexpected error")
            self.registry.update_status(job_id, f"failed: {e}")
        else:
            logging.info(f"Job {job_id} completed. Output at: {result}")
            self.registry.set_result(job_id, str(result))
