from django.urls import path
from .views import SubmitJobView

urlpatterns = [
    path("jobs/", SubmitJobView.as_view(), name="submit_job"),
]
