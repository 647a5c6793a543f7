"""
Base Celery task classes with enhanced logging and error handling.
"""
import logging
from celery import Task
from apps.core.sentry_utils import add_breadcrumb, capture_exception, start_transaction

logger = logging.getLogger(__name__)


class LoggedTask(Task):
    """
    Base task class with enhanced logging and Sentry integration.

    This task class automatically:
    - Logs task start and completion with a result summary
    - Logs task failures with error details and re-raises
    - Sends failures to Sentry with context
    - Creates Sentry transactions for performance monitoring
    """

    def __call__(self, *args, **kwargs):
        """
        Execute task with logging and error handling.
        """
        task_id = self.request.id
        task_name = self.name

        transaction = start_transaction(
            name=f"task.{task_name}",
            op="celery.task"
        )

        try:
            logger.info(
                f"Task started: {task_name}",
                extra={
                    'task_id': task_id,
                    'task_name': task_name,
                    'task_args': self._sanitize_args(args),
                    'task_kwargs': kwargs or {},
                }
            )
            add_breadcrumb(
                category="task",
                message=f"Task started: {task_name}",
                data={'task_id': task_id, 'task_name': task_name},
            )

            result = super().__call__(*args, **kwargs)

            logger.info(
                f"Task completed: {task_name}",
                extra={
                    'task_id': task_id,
                    'task_name': task_name,
                    'result': self._sanitize_result(result),
                }
            )

            if transaction:
                transaction.set_status("ok")
                transaction.finish()

            return result

        except Exception as exc:
            logger.error(
                f"Task failed: {task_name}",
                extra={
                    'task_id': task_id,
                    'task_name': task_name,
                    'exception': str(exc),
                },
                exc_info=True
            )

            capture_exception(
                exc,
                task={
                    'task_id': task_id,
                    'task_name': task_name,
                }
            )

            if transaction:
                transaction.set_status("internal_error")
                transaction.finish()

            raise

    def _sanitize_args(self, args):
        """
        Truncate task arguments for logging.
        """
        if not args:
            return []

        sanitized = [str(arg) for arg in args]
        if len(sanitized) > 10:
            sanitized = sanitized[:10] + ['... (truncated)']

        return sanitized

    def _sanitize_result(self, result):
        """
        Sanitize task result for logging (truncate if too long).
        """
        if result is None:
            return None

        result_str = str(result)
        if len(result_str) > 200:
            return result_str[:200] + '... (truncated)'

        return result_str
