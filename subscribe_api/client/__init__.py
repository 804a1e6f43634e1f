from subscribe_api.client.controller import SubmissionOutcome, SubscriptionFormController  # noqa: F401
from subscribe_api.client.view import StatusMessage, SubmitButton, SubscribeForm, TextInput  # noqa: F401
