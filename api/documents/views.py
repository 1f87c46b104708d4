import logging
import mimetypes

from django.conf import settings
from django.core import signing
from django.core.files.storage import default_storage
from django.db import DatabaseError, transaction
from django.http import FileResponse, JsonResponse
from django.views.decorators.http import require_GET
from rest_framework import mixins, status, viewsets
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

from accounts.permissions import OrgScopedMixin
from app.common.files import matches_signature
from app.errors import STORE_ERRORS, store_error
from workflows.dispatch import dispatch_workflow
from . import storage
from .models import Document
from .serializers import DocumentDetailSerializer, DocumentSerializer, UploadSerializer

logger = logging.getLogger(__name__)


class DocumentViewSet(
    OrgScopedMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """Document library.

    POST (multipart ``file``) uploads to storage, records the row and asks the
    engine to categorize it. If the row cannot be written the stored file is
    removed again.
    """

    queryset = Document.objects.select_related('grant')
    serializer_class = DocumentSerializer
    parser_classes = [JSONParser, MultiPartParser, FormParser]
    pagination_class = None
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return DocumentDetailSerializer
        return DocumentSerializer

    def get_queryset(self):
        qs = super().get_queryset()
        grant_id = self.request.query_params.get('grant_id')
        if grant_id and grant_id.isdigit():
            qs = qs.filter(grant_id=int(grant_id))
        return qs

    def create(self, request, *args, **kwargs):
        f = request.FILES.get('file')
        if not f or not f.name:
            return Response({'error': 'No file provided'}, status=400)
        ser = UploadSerializer(data=request.data, context={'request': request})
        ser.is_valid(raise_exception=True)
        content_type = (f.content_type or '').lower()
        if content_type not in settings.DOCUMENT_ALLOWED_TYPES:
            return Response(
                {'error': 'Invalid file type. Only PDF, DOCX, XLSX, PNG, and JPG files are allowed.'},
                status=400,
            )
        if f.size > settings.DOCUMENT_MAX_BYTES:
            return Response(
                {'error': 'File too large. Maximum size is 25MB.', 'limit': settings.DOCUMENT_MAX_BYTES},
                status=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            )
        head = f.read(16)
        f.seek(0)
        if not matches_signature(head, content_type):
            return Response({'error': 'mismatched_signature'}, status=400)

        path = storage.save_upload(request.user.id, f)
        try:
            with transaction.atomic():
                doc = Document.objects.create(
                    org=request.org,
                    grant=ser.validated_data.get('grant_id'),
                    uploaded_by=request.user,
                    name=f.name,
                    file=path,
                    file_type=content_type,
                    file_size=f.size,
                    category=ser.validated_data.get('category') or '',
                    description=ser.validated_data.get('description') or '',
                )
        except STORE_ERRORS as exc:
            # storage is not transactional: drop the orphaned object
            storage.delete_file(path)
            return store_error(exc)
        # the upload stands even when the categorize ledger row cannot be written
        try:
            with transaction.atomic():
                dispatch_workflow(request.org, 'categorize-document', {'document_id': doc.id}, grant=doc.grant)
        except DatabaseError as exc:
            logger.warning('categorize-document dispatch failed for document %s: %s', doc.id, exc)
        return Response(DocumentSerializer(doc).data, status=201)

    def perform_destroy(self, instance):
        # storage first; a failure there is logged and the row is deleted anyway
        storage.delete_file(instance.file)
        with transaction.atomic():
            instance.delete()


@require_GET
def storage_download(request, token: str):
    """Serve a stored document for a valid, unexpired signed token."""
    try:
        path = storage.resolve_token(token)
    except signing.SignatureExpired:
        return JsonResponse({'error': 'Link expired'}, status=403)
    except signing.BadSignature:
        return JsonResponse({'error': 'Invalid link'}, status=403)
    if not default_storage.exists(path):
        return JsonResponse({'error': 'Not found'}, status=404)
    content_type = mimetypes.guess_type(path)[0] or 'application/octet-stream'
    return FileResponse(default_storage.open(path, 'rb'), content_type=content_type)
