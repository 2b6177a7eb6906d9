import uuid
import threading

QUEUED = 'queued'
COMPLETED = 'completed'
FAILED_PREFIX = 'failed'


class Job:
    def __init__(self, job_id, url):
        self.job_id = job_id
        self.url = url
        self.status = QUEUED
        self.result_path = None

    @property
    def is_terminal(self):
        return self.status == COMPLETED or self.status.startswith(FAILED_PREFIX)

    def to_dict(self):
        return {
            'id': self.job_id,
            'url': self.url,
            'status': self.status,
            'result_path': self.result_path,
        }


class JobRegistry:
    """
    In-memory store of every job submitted during the process lifetime.

    One lock guards the whole collection. Each operation holds it only for a dict
    lookup and an attribute write. Once a job is completed or failed, further status
    writes are ignored.
    """

    def __init__(self):
        self._jobs = {}
        self._lock = threading.Lock()

    def create(self, url):
        job_id = str(uuid.uuid4())
        with self._lock:
            self._jobs[job_id] = Job(job_id, url)
        return job_id

    def list(self):
        with self._lock:
            return [job.to_dict() for job in self._jobs.values()]

    def get(self, job_id):
        with self._lock:
            job = self._jobs.get(job_id)
            return job.to_dict() if job else None

    def update_status(self, job_id, status):
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.is_terminal:
                return
            job.status = status

    def set_result(self, job_id, path):
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.is_terminal:
                return
            job.result_path = path
            job.status = COMPLETED
