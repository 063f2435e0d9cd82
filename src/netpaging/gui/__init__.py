"""Qt and view-model layer on top of the paging core."""
