"""Publish/subscribe routing of media frames between publishers and subscribers."""