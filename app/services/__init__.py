# Services package.
#
#   validation         turns a form-platform payload into a CommentRecord
#   collection         JSON codec for comment documents + slug-derived names
#   comment_service    append-only writes: direct commit or branch + pull request
#
# Services never see HTTP or settings loading; the router hands them a
# validated payload and the dependency layer hands them a ContentStore.
