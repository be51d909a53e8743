"""Upload handler that remembers the order multipart file parts arrive in."""

from django.core.files.uploadhandler import FileUploadHandler


class ArrivalOrderUploadHandler(FileUploadHandler):
    """Record the field name of every file part, in arrival order.

    Installed ahead of Django's default handlers. It passes every chunk
    through untouched, so the default handlers still build the uploaded
    files; ``request.FILES`` however groups them by field name, which loses
    the order when field names interleave.
    """

    def __init__(self, request=None):
        super().__init__(request)
        self.field_names = []

    def new_file(self, field_name, *args, **kwargs):
        super().new_file(field_name, *args, **kwargs)
        self.field_names.append(field_name)

    def receive_data_chunk(self, raw_data, start):
        return raw_data

    def file_complete(self, file_size):
        return None

    def files_in_arrival_order(self, files):
        """Return the files of a parsed ``request.FILES`` in arrival order."""
        remaining = {name: iter(files.getlist(name)) for name in files}
        ordered = []
        for name in self.field_names:
            file = next(remaining.get(name, iter(())), None)
            if file is not None:
                ordered.append(file)
        return ordered
