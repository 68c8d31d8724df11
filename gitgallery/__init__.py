"""GitGallery: persistence for named collections of GitHub repositories."""
