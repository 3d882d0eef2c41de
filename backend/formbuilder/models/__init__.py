from formbuilder.models.user import AdminUser
from formbuilder.models.form import Form, Field, FormStatus, MediaType, FieldType
from formbuilder.models.submission import Submission, SubmissionValue
