import logging

from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from clips.service.constants import PIPELINE_FAILED_MESSAGE
from clips.service.deliver import deliver
from clips.service.errors import PipelineError, RequestValidationError
from clips.service.pipeline import job_logger, run_pipeline
from clips.service.validate import validate_request

log = logging.getLogger(__name__)


@require_http_methods(['GET'])
def download_view(request):
    """
    Download a video, optionally trim it, and stream it back as MP4.

    Params:
        url (required): Page or media URL understood by yt-dlp
        start (optional): Trim start in seconds
        end (optional): Trim end in seconds

    Returns:
        The encoded video as an attachment (200), a JSON error for bad
        parameters (400), or a JSON error when download/processing fails (500)
    """
    try:
        job = validate_request(
            request.GET.get('url'),
            request.GET.get('start'),
            request.GET.get('end'),
        )
    except RequestValidationError as e:
        return JsonResponse({'error': str(e)}, status=400)

    logger = job_logger(job)

    try:
        run_pipeline(job, logger=logger)
        return deliver(job, logger=logger)
    except PipelineError:
        # Already logged and cleaned up by the pipeline
        return JsonResponse({'error': PIPELINE_FAILED_MESSAGE}, status=500)
    except Exception:
        log.exception('Could not deliver job %s', job.job_id)
        job.fail()
        job.release(logger=logger)
        return JsonResponse({'error': PIPELINE_FAILED_MESSAGE}, status=500)
