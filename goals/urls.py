# goals/urls.py
from django.urls import path
from . import views

app_name = 'goals'
urlpatterns = [
    path('projects/', views.log_project, name='log_project'),
    path('leaderboard/', views.leaderboard, name='leaderboard'),
    path('locations/', views.location_totals, name='location_totals'),
    path('project-types/', views.project_type_popularity, name='project_type_popularity'),
    path('stats/', views.stats, name='stats'),
    path('summary/', views.summary, name='summary'),
    path('weekly-records/', views.weekly_records, name='weekly_records'),
    path('weekly-records/<int:record_id>/', views.edit_weekly_record, name='edit_weekly_record'),
    path('rollover/', views.rollover, name='rollover'),
    path('goal/', views.weekly_goal, name='weekly_goal'),
]
